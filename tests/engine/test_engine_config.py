"""Configuration loading and validation tests."""

from __future__ import annotations

import pytest

from maillage.engine.config import ConfigError, load_config
from maillage.engine.types import AnchorCategory, SourceType


def test_defaults_are_valid(engine_config):
    assert sum(percent for _, percent in engine_config.anchors.distribution) == 100
    assert engine_config.anchors.distribution[0] == (AnchorCategory.EXACT_MATCH, 30)
    assert engine_config.authority.damping_factor == 0.85
    assert engine_config.placement.exclude_first and engine_config.placement.exclude_last
    assert engine_config.external.source_priority[0] is SourceType.GOVERNMENT
    assert engine_config.platform is None


def test_distribution_must_sum_to_100(config_data, build_config):
    config_data["anchors"]["distribution"]["generic"] = 25

    with pytest.raises(ConfigError, match="sum to 100"):
        build_config(config_data)


def test_damping_factor_bounds(config_data, build_config):
    config_data["authority"]["damping_factor"] = 1.0

    with pytest.raises(ConfigError, match="damping_factor"):
        build_config(config_data)


def test_unknown_source_type_rejected(config_data, build_config):
    config_data["external"]["source_priority"] = ["government", "blog"]

    with pytest.raises(ConfigError, match="blog"):
        build_config(config_data)


def test_min_links_cannot_exceed_max(config_data, build_config):
    config_data["internal"]["min_links"] = 20

    with pytest.raises(ConfigError):
        build_config(config_data)


def test_platform_override_is_merged_once(config_data, build_config):
    base = build_config(config_data)
    strict = build_config(config_data, "sos-expat")

    assert base.external.min_authority_score == 60
    assert strict.external.min_authority_score == 80
    assert strict.platform == "sos-expat"
    assert strict.external.max_links == base.external.max_links


def test_unknown_platform_keeps_base(config_data, build_config):
    assert build_config(config_data, "ulixai").external.min_authority_score == 60


def test_yaml_file_is_merged_over_defaults(tmp_path):
    path = tmp_path / "linking.yaml"
    path.write_text(
        "internal:\n"
        "  min_relevance_score: 55\n"
        "discovery:\n"
        "  query_patterns:\n"
        "    housing: '{country} housing rules {year}'\n"
        "platforms:\n"
        "  sos-expat:\n"
        "    external:\n"
        "      source_priority: [organization, government]\n",
        encoding="utf-8",
    )

    config = load_config(path, platform="sos-expat")

    assert config.internal.min_relevance_score == 55
    assert config.internal.max_links == 12
    assert "housing" in config.discovery.query_patterns
    assert "visa" in config.discovery.query_patterns
    assert config.external.source_priority == (SourceType.ORGANIZATION, SourceType.GOVERNMENT)
    assert config.external.min_authority_score == 80


def test_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")

    assert config.keywords.max_keywords == 50
