"""Declaration node schema.

A declaration node is one unit of source metadata produced by the external
compiler: a type alias, class, method or function declaration together with
its rendered text and the ids of the declarations it refers to.

The field names match the compiler artifact exactly::

    {"type": "ts", "ast_ty": "method_decl", "fmt": "...", "id": "Hello#0.ask#1",
     "context": ["Info#0"]}
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    ts = "ts"
    plaintext = "plaintext"


class AstType(str, Enum):
    method_decl = "method_decl"
    class_decl = "class_decl"
    type_alias_decl = "type_alias_decl"
    fn_decl = "fn_decl"


class DeclarationNode(BaseModel):
    """A single node of the declaration graph.

    ``ast_ty`` is optional on the wire; nodes without it never match a kind
    pattern and can only enter a scope through ``Scope.add_node``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", use_enum_values=True, validate_default=True)

    type: NodeType = Field(default=NodeType.plaintext, description="How the rendered text should be presented")
    ast_ty: Optional[AstType] = Field(default=None, description="Declaration kind")
    fmt: str = Field(default="", description="Rendered declaration text")
    id: str = Field(..., min_length=1, description="Dot-separated unique identifier")
    context: List[str] = Field(default_factory=list, description="Id patterns this node depends on")

    @property
    def kind(self) -> Optional[str]:
        return self.ast_ty

    @property
    def depends_on(self) -> List[str]:
        return self.context

    @property
    def renderable(self) -> bool:
        return self.type == NodeType.ts.value
