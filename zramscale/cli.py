"""Command-line interface for the ZRAM controller."""

import argparse
import dataclasses
import json
import sys
from typing import List, Optional

from zramscale import __version__
from zramscale.abstractions.types.zram_types import MIB, ControllerState, StatusEvent
from zramscale.base.services import (
    DeviceApplier, PATTERNS, StatusReporter, SystemProbe, ZramBenchmark, collect_status
)
from zramscale.config import Config
from zramscale.core import (
    ApplyError, ConfigError, ExitCode, InstanceLock, PrivilegeError, SignalHandler, ZramScaleError
)
from zramscale.core.controller import RescalingController
from zramscale.infrastructure.logging import get_logger, setup_logging, setup_simple_logging
from zramscale.infrastructure.system import LinuxSystemOps

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='zramscale',
        description="Size ZRAM swap from installed RAM and rescale it under memory pressure"
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', help='Path to config.yml (default: search standard locations)')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Console log level (default: logging.level from config)')
    parser.add_argument('--log-file', help='Log file (default: logging.file from config)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    start = subparsers.add_parser('start', help='Configure ZRAM and monitor memory pressure')
    start.add_argument('--once', action='store_true',
                       help='Apply the initial configuration and exit')
    mode = start.add_mutually_exclusive_group()
    mode.add_argument('--dynamic', dest='dynamic', action='store_true', default=None,
                      help='Enable pressure-driven rescaling')
    mode.add_argument('--static', dest='dynamic', action='store_false',
                      help='Disable pressure-driven rescaling')

    subparsers.add_parser('stop', help='Swap off all ZRAM devices and unload the module')

    status = subparsers.add_parser('status', help='Show memory and ZRAM device status')
    status.add_argument('--json', action='store_true', help='Print the report as JSON')

    benchmark = subparsers.add_parser('benchmark', help='Measure compression on a scratch device')
    benchmark.add_argument('--size-mb', type=int, help='MiB of data per pattern')
    benchmark.add_argument('--algorithm', help='Compression algorithm to test')
    benchmark.add_argument('--pattern', action='append', choices=sorted(PATTERNS),
                           help='Pattern to test, repeatable (default: all from config)')
    benchmark.add_argument('--json', action='store_true', help='Print results as JSON')

    return parser


def build_ops(config: Config) -> LinuxSystemOps:
    return LinuxSystemOps(
        sysfs_root=config.get('paths.sysfs_root', '/sys'),
        proc_root=config.get('paths.proc_root', '/proc'),
        dev_root=config.get('paths.dev_root', '/dev'),
    )


def require_privilege(ops) -> None:
    if not ops.is_privileged():
        raise PrivilegeError("root privileges are required to change swap and ZRAM devices")


def run_start(args, config: Config, ops, reporter: StatusReporter) -> int:
    """Initial setup, then the rescale loop until SIGTERM/SIGINT."""
    require_privilege(ops)
    policy = config.sizing_policy()
    if args.dynamic is not None:
        policy = dataclasses.replace(policy, dynamic_scaling_enabled=args.dynamic)
    settings = config.device_settings()

    with InstanceLock(config.get('paths.lock_file')), SignalHandler() as shutdown:
        controller = RescalingController(
            probe=SystemProbe(ops),
            applier=DeviceApplier(ops, settings),
            policy=policy,
            reporter=reporter,
            shutdown=shutdown,
            check_interval=config.check_interval,
        )
        if args.once:
            if shutdown.is_shutdown_requested():
                return ExitCode.INTERRUPTED
            controller.start()
            controller.stop()
            return ExitCode.OK
        return controller.run()


def run_stop(args, config: Config, ops, reporter: StatusReporter) -> int:
    """Tear down every ZRAM swap device."""
    require_privilege(ops)
    settings = config.device_settings()

    with InstanceLock(config.get('paths.lock_file')):
        specs = SystemProbe(ops).read_device_specs()
        failures = DeviceApplier(ops, settings).teardown(specs)

    if failures:
        reporter.emit(StatusEvent(
            phase='stop',
            state=ControllerState.STOPPED,
            applied_bytes=sum(spec.capacity_bytes for spec in specs if spec.active),
            errors=[str(f) for f in failures],
            error_kind=ApplyError.kind,
            mutated=True,
        ))
        return ExitCode.SETUP_FAILED
    logger.info(f"Stopped {len(specs)} ZRAM device(s)")
    return ExitCode.OK


def run_status(args, config: Config, ops, reporter: StatusReporter) -> int:
    settings = config.device_settings()
    report = collect_status(SystemProbe(ops), config.sizing_policy(), settings.device_count)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        for line in report.format_lines():
            print(line)
    return ExitCode.OK


def run_benchmark(args, config: Config, ops, reporter: StatusReporter) -> int:
    require_privilege(ops)
    size_mb = args.size_mb or config.get('benchmark.size_mb')
    algorithm = (args.algorithm
                 or config.get('benchmark.compression_algorithm')
                 or config.device_settings().compression_algorithm)
    patterns = args.pattern or config.get('benchmark.patterns')

    if not isinstance(size_mb, int) or size_mb <= 0:
        raise ConfigError(f"benchmark size must be a positive number of MiB, got {size_mb!r}")

    benchmark = ZramBenchmark(ops, size_mb * MIB, str(algorithm))
    try:
        results = benchmark.run(patterns)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return ExitCode.OK

    print(f"Compression benchmark: {size_mb}MiB per pattern, algorithm {algorithm}")
    for r in results:
        ratio = f"{r.compression_ratio:.2f}x" if r.compression_ratio else "n/a"
        throughput = r.throughput_mb_per_second
        print(
            f"  {r.pattern:<10} time {r.duration_seconds * 1000:.0f}ms  ratio {ratio}  "
            f"memory +{r.mem_used_bytes // MIB}MiB  "
            f"throughput {f'{throughput:.1f}MB/s' if throughput else 'n/a'}"
        )
    return ExitCode.OK


COMMANDS = {
    'start': run_start,
    'stop': run_stop,
    'status': run_status,
    'benchmark': run_benchmark,
}


def report_failure(reporter: StatusReporter, phase: str, error: ZramScaleError) -> None:
    """Emit a status event for a fatal error unless the controller already did."""
    last = reporter.last_event
    if last is not None and last.error_kind == error.kind:
        return
    reporter.emit(StatusEvent(
        phase=phase,
        state=ControllerState.UNINITIALIZED,
        errors=[str(error)],
        error_kind=error.kind,
    ))


def main(argv: Optional[List[str]] = None, ops=None,
         reporter: Optional[StatusReporter] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    reporter = reporter or StatusReporter()

    # Console logging until the config says where else to log
    setup_simple_logging(args.log_level or 'INFO')

    try:
        config = Config(config_file=args.config)
        log_level = args.log_level or str(config.get('logging.level', 'INFO'))
        if args.command == 'status':
            setup_simple_logging(args.log_level or 'WARNING')
        else:
            run_id = setup_logging(config, log_file=args.log_file, log_level=log_level)
            logger.info(f"zramscale {__version__} {args.command} (run {run_id[:8]})")

        if ops is None:
            ops = build_ops(config)
        return int(COMMANDS[args.command](args, config, ops, reporter))

    except ZramScaleError as e:
        logger.error(f"{e.kind}: {e}")
        report_failure(reporter, args.command, e)
        return int(e.exit_code)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        reporter.emit(StatusEvent(phase=args.command, state=ControllerState.STOPPED,
                                  errors=["interrupted"], error_kind="interrupted"))
        return int(ExitCode.INTERRUPTED)


if __name__ == "__main__":
    sys.exit(main())
