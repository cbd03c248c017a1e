"""Tests for tag parsing and normalization helpers."""

import uuid
from datetime import timezone

import pytest

from ttstorage.utils import generate_uuid, normalize_tags, parse_tags, utc_now


class TestParseTags:
    @pytest.mark.parametrize("raw, expected", [
        ("a,b,c", ["a", "b", "c"]),
        (" a , b ", ["a", "b"]),
        ("a,,b,", ["a", "b"]),
        ("", []),
        (None, []),
        ("   ", []),
    ])
    def test_parse(self, raw, expected):
        assert parse_tags(raw) == expected


class TestNormalizeTags:
    def test_lowercases(self):
        assert normalize_tags(["Work", "HOLIDAY"]) == {"work", "holiday"}

    def test_case_variants_collapse(self):
        assert normalize_tags({"A", "a"}) == {"a"}

    def test_idempotent(self):
        once = normalize_tags(["MiXeD", "Tag"])

        assert normalize_tags(once) == once

    def test_none_is_empty(self):
        assert normalize_tags(None) == set()


def test_generate_uuid_is_v4():
    assert uuid.UUID(generate_uuid()).version == 4


def test_utc_now_is_timezone_aware():
    assert utc_now().tzinfo == timezone.utc
