"""
Service layer of the ZRAM controller.

- SystemProbe: read-only memory and device queries
- Sizing policy: pure tier and pressure sizing functions
- DeviceApplier: converges live devices to a decision
- StatusReporter: structured status events
- Status report and compression benchmark for the CLI
"""
