"""Infrastructure layer: logging and operating system access."""
