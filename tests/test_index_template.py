"""Tests for dynamic index templates."""

import pytest

from hec_forwarder.errors import ConfigError, NormalizationError
from hec_forwarder.index_template import (
    IndexTemplate,
    Literal,
    RecordPath,
    SourceRef,
    parse_pattern,
)


class TestParsePattern:
    def test_literal_only(self):
        assert parse_pattern("main") == [Literal("main")]

    def test_empty_pattern(self):
        assert parse_pattern("") == []

    def test_mixed_nodes(self):
        nodes = parse_pattern("prefix_${source}_${record['kubernetes']['pod_name']}")
        assert nodes == [
            Literal("prefix_"),
            SourceRef(),
            Literal("_"),
            RecordPath(("kubernetes", "pod_name")),
        ]

    def test_double_quotes_and_spaces(self):
        assert parse_pattern('${ record[ "app" ] }') == [RecordPath(("app",))]

    def test_integer_subscript(self):
        assert parse_pattern("${record['hosts'][0]}") == [RecordPath(("hosts", 0))]

    def test_escaped_quote_in_key(self):
        assert parse_pattern(r"${record['it\'s']}") == [RecordPath(("it's",))]

    def test_lone_dollar_is_literal(self):
        assert parse_pattern("cost$5") == [Literal("cost$5")]

    @pytest.mark.parametrize(
        "pattern",
        [
            "${source",
            "${}",
            "${record}",
            "${record.app}",
            "${record['app'}",
            "${record['app]}",
            "${record[app]}",
            "${env['HOME']}",
            "${`hostname`}",
            "#{record['app']}x${system('id')}",
        ],
    )
    def test_malformed_patterns_rejected(self, pattern):
        with pytest.raises(ConfigError):
            parse_pattern(pattern)


class TestRender:
    def test_resolves_source_and_nested_field(self):
        template = IndexTemplate("prefix_${source}_${record['kubernetes']['pod_name']}")
        record = {"kubernetes": {"pod_name": "mypod"}}
        assert template.render("fluentd", record) == "prefix_fluentd_mypod"

    def test_ruby_style_interpolation_is_plain_text(self):
        template = IndexTemplate("#{1+1}")
        assert template.render("fluentd", {}) == "#{1+1}"

    def test_numeric_value_stringified(self):
        assert IndexTemplate("idx_${record['shard']}").render("s", {"shard": 3}) == "idx_3"

    def test_none_value_renders_empty(self):
        assert IndexTemplate("idx_${record['shard']}").render("s", {"shard": None}) == "idx_"

    def test_list_position(self):
        template = IndexTemplate("${record['hosts'][1]}")
        assert template.render("s", {"hosts": ["a", "b"]}) == "b"

    def test_missing_key_raises(self):
        with pytest.raises(NormalizationError):
            IndexTemplate("${record['missing']}").render("s", {"app": "web"})

    def test_lookup_through_scalar_raises(self):
        with pytest.raises(NormalizationError):
            IndexTemplate("${record['app']['name']}").render("s", {"app": "web"})

    def test_mapping_value_raises(self):
        with pytest.raises(NormalizationError):
            IndexTemplate("${record['app']}").render("s", {"app": {"name": "web"}})

    def test_out_of_range_raises(self):
        with pytest.raises(NormalizationError):
            IndexTemplate("${record['hosts'][5]}").render("s", {"hosts": ["a"]})
