"""
postpipe - HTTP ingress to Kafka to PostgreSQL post pipeline.

The consumer side buffers posts in memory and bulk-inserts them when the
batch grows past a size threshold or a flush interval elapses.
"""
