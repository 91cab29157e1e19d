"""Compilers for documents sent back to delivering sources."""

from .acknowledgement import AcknowledgementCompiler
from .compiler import Compiler

__all__ = ["Compiler", "AcknowledgementCompiler"]
