# ==============================================================================
# Repository Abstract Base Classes
# ==============================================================================
"""
Repository ABC for post persistence.

Defines the "what" (bulk-save posts) not the "how". Concrete
implementations in infrastructure/ handle the specifics.
"""

from abc import ABC, abstractmethod

from postpipe.core.models import Post


class PostRepository(ABC):
    """Repository for posts. The batch buffer's sink."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def save(self, posts: list[Post]) -> int:
        """
        Persist posts in one bulk write.

        Args:
            posts: Ordered list of posts to insert

        Returns:
            Count of posts saved

        Raises:
            Any store error. The caller owns retry.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...
