from __future__ import annotations

import pytest

from hieraedit.core.ast import ClassDefinition, DefinedTypeDefinition, parse, parse_definition
from hieraedit.core.ast.nodes import Block, HashNode, ListNode, Primitive, Unsupported, Variable
from hieraedit.core.exceptions import ParseError

from helpers.pn import block, define, klass, param, qr, var


def test_primitives_lists_and_maps():
    assert isinstance(parse(5), Primitive)
    assert isinstance(parse(None), Primitive)
    node = parse([1, "a"])
    assert isinstance(node, ListNode) and len(node.entries) == 2
    mapping = parse({"#": ["a", 1, "b", [2]]})
    assert isinstance(mapping, HashNode)
    assert mapping.literal("a") == 1
    assert isinstance(mapping.get("b"), ListNode)


def test_call_nodes_dispatch_on_tag():
    node = parse(var("x"))
    assert isinstance(node, Variable)
    assert node.name == "x"


def test_unknown_tag_becomes_unsupported():
    node = parse({"^": ["heredoc", "text"]})
    assert isinstance(node, Unsupported)
    assert node.tag == "heredoc"


def test_odd_map_is_rejected():
    with pytest.raises(ParseError):
        parse({"#": ["a", 1, "b"]})


def test_malformed_call_is_rejected():
    with pytest.raises(ParseError):
        parse({"^": []})
    with pytest.raises(ParseError, match="Malformed 'class' node"):
        parse({"^": ["class", "not-a-map"]})


def test_class_definition_reads_params_and_parent():
    clazz = parse(
        klass(
            "ntp",
            parent="ntp::params",
            params={"servers": param(qr("Array"), ["a"]), "enable": param()},
        )
    )
    assert isinstance(clazz, ClassDefinition)
    assert clazz.name == "ntp"
    assert clazz.parent_name == "ntp::params"
    assert [p.name for p in clazz.params] == ["servers", "enable"]
    assert clazz.params[1].default is None


def test_parse_definition_searches_blocks_with_exact_kind():
    artifact = block(define("web::vhost"), klass("web"))
    assert isinstance(parse(artifact), Block)

    clazz = parse_definition(artifact, ClassDefinition, "web")
    assert type(clazz) is ClassDefinition
    assert clazz.name == "web"

    vhost = parse_definition(artifact, DefinedTypeDefinition, "web::vhost")
    assert vhost.name == "web::vhost"


def test_parse_definition_rejects_wrong_kind():
    with pytest.raises(ParseError, match="holds no ClassDefinition"):
        parse_definition(define("web::vhost"), ClassDefinition, "web::vhost")


def test_every_parse_builds_a_fresh_tree():
    artifact = klass("ntp")
    assert parse(artifact) is not parse(artifact)
