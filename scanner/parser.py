"""Parsing of Rust source files and extraction of module and use items."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import tree_sitter_rust as ts_rust
from tree_sitter import Language, Node, Parser

from .errors import RustSyntaxError, SourceReadError
from .imports import (
    CRATE_KEYWORD,
    EXTERN_MARKER,
    SELF_KEYWORD,
    SUPER_KEYWORD,
    UseGlob,
    UseGroup,
    UseName,
    UsePath,
    UseRename,
    UseTree,
)


logger = logging.getLogger(__name__)

RUST_LANGUAGE = Language(ts_rust.language())
PARSER = Parser(RUST_LANGUAGE)

# Node types that stand for a single path segment.
SEGMENT_NODE_TYPES = {"identifier", CRATE_KEYWORD, SELF_KEYWORD, SUPER_KEYWORD, "metavariable"}

# Siblings that may sit between an outer attribute and the item it applies to.
COMMENT_NODE_TYPES = {"line_comment", "block_comment"}


@dataclass(frozen=True)
class ParsedSource:
    """A successfully parsed source file."""

    path: Path
    root: Node


@dataclass(frozen=True)
class ModDeclaration:
    """
    A ``mod`` item.

    ``body`` is the item list of an inline module (``mod foo { ... }``) and
    None for an external one (``mod foo;``).
    """

    name: str
    path_override: Optional[str]
    body: Optional[Node]

    @property
    def is_inline(self) -> bool:
        return self.body is not None


def read_source(file_path: Path) -> str:
    """
    Read a source file as UTF-8 text.

    Raises:
        SourceReadError: If the file is missing, unreadable or not UTF-8.
    """
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        reason = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
        raise SourceReadError(file_path, reason) from exc


def parse_source(text: str, file_path: Path) -> ParsedSource:
    """
    Parse Rust source text.

    Args:
        text: The source text.
        file_path: Path the text came from, used in error messages.

    Returns:
        The parsed file.

    Raises:
        RustSyntaxError: If the text is not valid Rust.
    """
    tree = PARSER.parse(text.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        raise _syntax_error(root, file_path)
    return ParsedSource(path=file_path, root=root)


def parse_file(file_path: Path) -> ParsedSource:
    """
    Read and parse a Rust source file.

    Raises:
        SourceReadError: If the file cannot be read.
        RustSyntaxError: If the file is not valid Rust.
    """
    parsed = parse_source(read_source(file_path), file_path)
    logger.debug("Parsed %s", file_path)
    return parsed


def _syntax_error(root: Node, file_path: Path) -> RustSyntaxError:
    """Build an error pointing at the first broken node of a tree."""
    node = _first_error_node(root) or root
    line, column = node.start_point[0] + 1, node.start_point[1] + 1
    if node.is_missing:
        message = f"missing '{node.type}'"
    else:
        snippet = _text(node).strip().splitlines()
        token = snippet[0][:40] if snippet else ""
        message = f"unexpected '{token}'" if token else "unexpected end of input"
    return RustSyntaxError(file_path, line, column, message)


def _first_error_node(node: Node) -> Optional[Node]:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error_node(child)
            if found is not None:
                return found
    return None


def _text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def _identifier(node: Node) -> str:
    """Return an identifier's name, dropping the raw identifier prefix."""
    text = _text(node)
    return text[2:] if text.startswith("r#") else text


def _items(block: Node) -> Iterator[Node]:
    """Iterate over the items of a source file or inline module body."""
    for child in block.named_children:
        yield child


def extract_mod_declarations(block: Node) -> List[ModDeclaration]:
    """
    Extract the module declarations directly contained in a block.

    Args:
        block: A ``source_file`` root or an inline module's ``declaration_list``.

    Returns:
        Declarations in source order.
    """
    declarations: List[ModDeclaration] = []
    for item in _items(block):
        if item.type != "mod_item":
            continue
        name_node = item.child_by_field_name("name")
        if name_node is None:
            continue
        declarations.append(
            ModDeclaration(
                name=_identifier(name_node),
                path_override=get_path_attribute(item),
                body=item.child_by_field_name("body"),
            )
        )
    return declarations


def get_path_attribute(item: Node) -> Optional[str]:
    """Get the ``#[path = "..."]`` value attached to an item, if present."""
    sibling = item.prev_named_sibling
    while sibling is not None and (
        sibling.type == "attribute_item" or sibling.type in COMMENT_NODE_TYPES
    ):
        if sibling.type == "attribute_item":
            value = _path_attribute_value(sibling)
            if value is not None:
                return value
        sibling = sibling.prev_named_sibling
    return None


def _path_attribute_value(attribute_item: Node) -> Optional[str]:
    for attribute in attribute_item.named_children:
        if attribute.type != "attribute" or not attribute.named_children:
            continue
        name = attribute.named_children[0]
        if name.type != "identifier" or _text(name) != "path":
            continue
        value = attribute.child_by_field_name("value")
        if value is not None and value.type in ("string_literal", "raw_string_literal"):
            return _string_value(value)
    return None


def _string_value(literal: Node) -> str:
    text = _text(literal)
    if literal.type == "raw_string_literal":
        # r"..." or r#"..."#
        body = text[1:].strip("#")
        return body[1:-1]
    return text[1:-1].replace('\\"', '"').replace("\\\\", "\\")


def extract_use_trees(block: Node) -> List[UseTree]:
    """
    Extract the use statements directly contained in a block.

    Args:
        block: A ``source_file`` root or an inline module's ``declaration_list``.

    Returns:
        One use tree per ``use`` item, in source order.
    """
    trees: List[UseTree] = []
    for item in _items(block):
        if item.type != "use_declaration":
            continue
        argument = item.child_by_field_name("argument")
        if argument is None:
            continue
        tree = _use_tree(argument)
        if tree is not None:
            trees.append(tree)
    return trees


def _use_tree(node: Node) -> Optional[UseTree]:
    """Convert a use clause node to a use tree."""
    if node.type == "use_as_clause":
        path = node.child_by_field_name("path")
        alias = node.child_by_field_name("alias")
        segments = _path_segments(path) if path is not None else ()
        if not segments:
            return None
        alias_name = _identifier(alias) if alias is not None else "_"
        return _wrap(segments[:-1], UseRename(segments[-1], alias_name))

    if node.type == "use_list":
        items: List[UseTree] = []
        for child in node.named_children:
            if child.type in COMMENT_NODE_TYPES:
                continue
            tree = _use_tree(child)
            if tree is not None:
                items.append(tree)
        return UseGroup(tuple(items))

    if node.type == "scoped_use_list":
        path = node.child_by_field_name("path")
        use_list = node.child_by_field_name("list")
        group = _use_tree(use_list) if use_list is not None else None
        if group is None:
            return None
        prefix = _path_segments(path) if path is not None else (EXTERN_MARKER,)
        return _wrap(prefix, group)

    if node.type == "use_wildcard":
        prefix: Tuple[str, ...] = ()
        for child in node.named_children:
            if child.type in SEGMENT_NODE_TYPES or child.type == "scoped_identifier":
                prefix = _path_segments(child)
                break
        if not prefix and _text(node).startswith("::"):
            prefix = (EXTERN_MARKER,)
        return _wrap(prefix, UseGlob())

    segments = _path_segments(node)
    if not segments:
        return None
    return _wrap(segments[:-1], UseName(segments[-1]))


def _wrap(prefix: Tuple[str, ...], tree: UseTree) -> UseTree:
    """Nest ``tree`` below a chain of path segments."""
    for segment in reversed(prefix):
        tree = UsePath(segment, tree)
    return tree


def _path_segments(node: Node) -> Tuple[str, ...]:
    """Split a (possibly scoped) path node into its segments."""
    if node.type in SEGMENT_NODE_TYPES:
        return (_identifier(node),)
    if node.type == "scoped_identifier":
        name = node.child_by_field_name("name")
        path = node.child_by_field_name("path")
        if name is None:
            return ()
        if path is None:
            # ``::name`` refers to an extern crate
            return (EXTERN_MARKER, _identifier(name))
        prefix = _path_segments(path)
        if not prefix:
            return ()
        return prefix + (_identifier(name),)
    # generic or bracketed types never name a module
    return ()
