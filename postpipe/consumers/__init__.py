"""
Consumer side of the post pipeline.

- batch_buffer: BatchBuffer and FlushTimer (size/time-triggered bulk flushes)
- flush_metrics: FlushMetrics instrumentation
- post_consumer: PostConsumer consume loop

Usage:
    from postpipe.consumers import PostConsumer

    consumer = PostConsumer(subscriber, repository)
    consumer.run()
"""

from postpipe.consumers.batch_buffer import BatchBuffer, FlushTimer
from postpipe.consumers.flush_metrics import FlushMetrics
from postpipe.consumers.post_consumer import PostConsumer

__all__ = ["BatchBuffer", "FlushMetrics", "FlushTimer", "PostConsumer"]
