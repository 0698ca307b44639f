"""Builds the type description model from Lark parse trees.

The builder walks the tree produced by ``grammar.lark`` directly rather than
through a Transformer, so every node keeps the span of the tree it came from.
"""
from __future__ import annotations
from typing import Callable, List, Optional

from lark import Tree, Token

from tagged_union.internals.errors import raise_internal_error
from tagged_union.internals.report import span_of
from tagged_union.semantics.ast import (
    ArrayTypeExpr, Attribute, DeclKind, FieldDecl, GenericParam, PathTypeExpr,
    PointerTypeExpr, ReferenceTypeExpr, SourceFile, TupleTypeExpr, TypeDescription,
    TypeExpr, VariantDecl, VariantShape, WherePredicate,
)


TYPE_NODE_NAMES = {"path_type", "array_type", "tuple_type", "pointer_type", "reference_type"}

DECL_KINDS = {
    "enum_def": DeclKind.ENUM,
    "struct_def": DeclKind.STRUCT,
    "union_def": DeclKind.UNION,
    "type_alias": DeclKind.ALIAS,
}


# ------------------------
# Tree navigation
# ------------------------

def first(children: List[object], pred: Callable) -> Optional[object]:
    """Find first child matching predicate."""
    for ch in children:
        if pred(ch):
            return ch
    return None


def first_token(children: List[object], type_: str) -> Optional[Token]:
    """Get first token of the given terminal type."""
    return first(children, lambda c: isinstance(c, Token) and c.type == type_)  # type: ignore[return-value]


def first_tree(children: List[object], data: str) -> Optional[Tree]:
    """Get first Tree child with specific data tag."""
    return first(children, lambda c: isinstance(c, Tree) and c.data == data)  # type: ignore[return-value]


def trees(children: List[object], data: str) -> List[Tree]:
    return [c for c in children if isinstance(c, Tree) and c.data == data]


def type_trees(children: List[object]) -> List[Tree]:
    return [c for c in children if isinstance(c, Tree) and c.data in TYPE_NODE_NAMES]


# ------------------------
# AST Builder
# ------------------------

class ASTBuilder:
    """Turns a ``start`` tree into a SourceFile."""

    def build(self, tree: Tree) -> SourceFile:
        items = [self._item(t) for t in trees(tree.children, "item")]
        return SourceFile(loc=span_of(tree), items=items)

    # === Declarations ===

    def _item(self, t: Tree) -> TypeDescription:
        attributes = [self._attribute(a) for a in trees(t.children, "attribute")]
        public = first_tree(t.children, "visibility") is not None
        decl = first(t.children, lambda c: isinstance(c, Tree) and c.data in DECL_KINDS)
        if decl is None:
            raise_internal_error("TU0001", node=t.data)

        kind = DECL_KINDS[decl.data]
        name_tok = first_token(decl.children, "NAME")
        desc = TypeDescription(
            loc=span_of(decl),
            kind=kind,
            name=str(name_tok),
            attributes=attributes,
            public=public,
            name_span=span_of(name_tok),
        )

        generics_node = first_tree(decl.children, "generics")
        if generics_node is not None:
            desc.generics = [self._generic_param(p) for p in generics_node.children if isinstance(p, Tree)]
        where_node = first_tree(decl.children, "where_clause")
        if where_node is not None:
            desc.where = [self._where_predicate(p) for p in trees(where_node.children, "where_predicate")]

        if kind == DeclKind.ENUM:
            desc.variants = [self._variant(v) for v in trees(decl.children, "variant")]
        elif kind == DeclKind.ALIAS:
            desc.aliased = self.type_expr(type_trees(decl.children)[0])
        else:
            desc.fields = self._struct_body(decl)
        return desc

    def _struct_body(self, decl: Tree) -> List[FieldDecl]:
        named = first_tree(decl.children, "named_fields")
        if named is not None:
            return [self._named_field(f) for f in trees(named.children, "named_field")]
        positional = first_tree(decl.children, "tuple_fields")
        if positional is not None:
            return self._tuple_fields(positional)
        return []

    def _variant(self, t: Tree) -> VariantDecl:
        name_tok = first_token(t.children, "NAME")
        attributes = [self._attribute(a) for a in trees(t.children, "attribute")]

        shape = VariantShape.UNIT
        fields: List[FieldDecl] = []
        positional = first_tree(t.children, "tuple_fields")
        named = first_tree(t.children, "named_fields")
        if positional is not None:
            shape = VariantShape.TUPLE
            fields = self._tuple_fields(positional)
        elif named is not None:
            shape = VariantShape.STRUCT
            fields = [self._named_field(f) for f in trees(named.children, "named_field")]

        discriminant = None
        disc_node = first_tree(t.children, "discriminant")
        if disc_node is not None:
            discriminant = _int(first_token(disc_node.children, "INT"))
            if first_token(disc_node.children, "MINUS") is not None:
                discriminant = -discriminant

        return VariantDecl(
            loc=span_of(t),
            name=str(name_tok),
            shape=shape,
            fields=fields,
            discriminant=discriminant,
            attributes=attributes,
            name_span=span_of(name_tok),
        )

    def _tuple_fields(self, t: Tree) -> List[FieldDecl]:
        return [
            FieldDecl(
                loc=span_of(f),
                name=None,
                ty=self.type_expr(type_trees(f.children)[0]),
                attributes=[self._attribute(a) for a in trees(f.children, "attribute")],
            )
            for f in trees(t.children, "tuple_field")
        ]

    def _named_field(self, t: Tree) -> FieldDecl:
        name_tok = first_token(t.children, "NAME")
        return FieldDecl(
            loc=span_of(t),
            name=str(name_tok),
            ty=self.type_expr(type_trees(t.children)[0]),
            attributes=[self._attribute(a) for a in trees(t.children, "attribute")],
        )

    # === Attributes ===

    def _attribute(self, t: Tree) -> Attribute:
        return self._meta(first(t.children, lambda c: isinstance(c, Tree)))

    def _meta(self, t: Tree) -> Attribute:
        if t.data == "meta_int":
            return Attribute(loc=span_of(t), path=str(_int(t.children[0])))
        path = _path_text(first_tree(t.children, "path"))
        attr = Attribute(loc=span_of(t), path=path)
        args = first_tree(t.children, "meta_args")
        if args is not None:
            attr.args = [self._meta(m) for m in args.children if isinstance(m, Tree)]
        value = first_tree(t.children, "meta_value")
        if value is not None:
            attr.value = str(value.children[0])
        return attr

    # === Generics ===

    def _generic_param(self, t: Tree) -> GenericParam:
        if t.data == "lifetime_param":
            lifetimes = [str(tok) for tok in t.children if isinstance(tok, Token)]
            return GenericParam(loc=span_of(t), kind="lifetime", name=lifetimes[0], bounds=lifetimes[1:])
        if t.data == "type_param":
            bounds_node = first_tree(t.children, "bounds")
            return GenericParam(
                loc=span_of(t),
                kind="type",
                name=str(first_token(t.children, "NAME")),
                bounds=_bounds(bounds_node) if bounds_node is not None else [],
            )
        if t.data == "const_param":
            ty = self.type_expr(type_trees(t.children)[0])
            return GenericParam(loc=span_of(t), kind="const", name=str(first_token(t.children, "NAME")),
                                bounds=[str(ty)])
        raise_internal_error("TU0001", node=t.data)

    def _where_predicate(self, t: Tree) -> WherePredicate:
        lifetime = first_token(t.children, "LIFETIME")
        bounded = str(lifetime) if lifetime is not None else str(self.type_expr(type_trees(t.children)[0]))
        return WherePredicate(loc=span_of(t), bounded=bounded,
                              bounds=_bounds(first_tree(t.children, "bounds")))

    # === Types ===

    def type_expr(self, t: Tree) -> TypeExpr:
        """Convert a type subtree into a type expression."""
        tag = t.data
        loc = span_of(t)
        if tag == "path_type":
            path = first_tree(t.children, "path")
            segments = trees(path.children, "path_segment")
            names = tuple(str(first_token(s.children, "NAME")) for s in segments)
            args: tuple = ()
            generic_args = first_tree(segments[-1].children, "generic_args")
            if generic_args is not None:
                args = tuple(self.type_expr(a) for a in type_trees(generic_args.children))
            leading = bool(path.children) and isinstance(path.children[0], Token) \
                and path.children[0].type == "PATH_SEP"
            return PathTypeExpr(segments=names, args=args, leading_sep=leading, loc=loc)
        if tag == "array_type":
            element = self.type_expr(type_trees(t.children)[0])
            return ArrayTypeExpr(element=element, length=_int(first_token(t.children, "INT")), loc=loc)
        if tag == "tuple_type":
            return TupleTypeExpr(elements=tuple(self.type_expr(e) for e in type_trees(t.children)), loc=loc)
        if tag == "pointer_type":
            mutable = first_token(t.children, "MUT") is not None
            return PointerTypeExpr(pointee=self.type_expr(type_trees(t.children)[0]), mutable=mutable, loc=loc)
        if tag == "reference_type":
            lifetime = first_token(t.children, "LIFETIME")
            return ReferenceTypeExpr(
                referent=self.type_expr(type_trees(t.children)[0]),
                mutable=first_token(t.children, "MUT") is not None,
                lifetime=str(lifetime) if lifetime is not None else None,
                loc=loc,
            )
        raise_internal_error("TU0001", node=tag)


def _int(tok: Token) -> int:
    return int(str(tok).replace("_", ""))


def _path_text(path: Tree) -> str:
    names = [str(first_token(s.children, "NAME")) for s in trees(path.children, "path_segment")]
    return "::".join(names)


def _bounds(t: Tree) -> List[str]:
    out: List[str] = []
    for bound in trees(t.children, "bound"):
        lifetime = first_token(bound.children, "LIFETIME")
        if lifetime is not None:
            out.append(str(lifetime))
            continue
        text = _path_text(first_tree(bound.children, "path"))
        if first_token(bound.children, "QUESTION") is not None:
            text = "?" + text
        out.append(text)
    return out
