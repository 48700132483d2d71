"""
CLI commands for the post pipeline.

Commands are organized into separate modules:
- shared.py: Colors, icons and small helpers
- producer.py, consumer.py: foreground process commands
- db.py: schema initialization
- config.py: configuration display
- status.py: Kafka and PostgreSQL health
"""
