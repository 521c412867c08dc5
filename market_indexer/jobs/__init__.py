"""Background jobs: task queue, scheduler and health server."""
