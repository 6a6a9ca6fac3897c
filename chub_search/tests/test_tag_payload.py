from chub_search.integrations.tag_payload import (
    BareTagList,
    EmptyTagList,
    WrappedTagList,
    parse_tag_payload,
)


def test_bare_array_payload() -> None:
    payload = parse_tag_payload(["elf", {"tag": "mage"}, "  ", 42, {"name": "ignored"}])

    assert isinstance(payload, BareTagList)
    assert payload.names() == ["elf", "mage"]


def test_wrapped_payload() -> None:
    payload = parse_tag_payload({"tags": [{"tag": "robot"}, "elf"], "count": 2})

    assert isinstance(payload, WrappedTagList)
    assert payload.names() == ["robot", "elf"]


def test_unknown_payload_shapes_are_empty() -> None:
    for raw in (None, {}, {"tags": "elf"}, "elf", 3):
        payload = parse_tag_payload(raw)
        assert isinstance(payload, EmptyTagList)
        assert payload.names() == []
