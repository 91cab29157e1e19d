"""Base class for outbound document compilers."""

from abc import ABC, abstractmethod


class Compiler(ABC):
    """Abstract base class for compilers.

    Compilers render the XML documents sent back to delivering sources.
    """

    @abstractmethod
    def compile(self, *args, **kwargs) -> bytes:
        """Render a document.

        Returns:
            Serialized UTF-8 XML, declaration included
        """
        pass
