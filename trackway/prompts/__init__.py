"""Declarations, scopes and prompt templates.

This package turns the compiler's declaration artifact into the text the
model sees:

- :class:`DeclarationGraph` holds every declaration of an agent's source.
- :class:`Scope` selects the declarations relevant to one turn and closes
  them over their dependencies.
- :class:`Template` renders scopes, outputs and errors, and parses replies.
"""

from .graph import DeclarationGraph, artifact_name
from .models import AstType, DeclarationNode, NodeType
from .scope import Scope
from .template import NaiveTemplate, StructuredCall, Template, block_quote

__all__ = [
    "AstType",
    "DeclarationGraph",
    "DeclarationNode",
    "NaiveTemplate",
    "NodeType",
    "Scope",
    "StructuredCall",
    "Template",
    "artifact_name",
    "block_quote",
]
