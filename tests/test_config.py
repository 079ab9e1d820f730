"""Tests for global configuration."""

import logging
from pathlib import Path

import pytest

from viral_score.config import DEFAULT_CONFIG, deep_merge, get_global_config

logger = logging.getLogger(__name__)


@pytest.fixture
def config():
    config = get_global_config()
    yield config
    config.reload()


def test_singleton():
    assert get_global_config() is get_global_config()


def test_defaults_are_present(config):
    assert config.get('model.key') == 'popularity-model'
    assert config.get('model.engine') == 'torchscript'
    assert config.get_int('cache.ttl_days') == 30
    assert config.get_int('upload.max_bytes') == 10 * 1024 * 1024


def test_missing_key_returns_default(config):
    assert config.get('model.nope', 'fallback') == 'fallback'
    assert config.get('nope.deeper') is None


def test_set_and_reload(config):
    config.set('model.version', 'v9')
    assert config.get('model.version') == 'v9'

    config.reload()
    assert config.get('model.version') != 'v9'


def test_merge(config):
    config.merge({'model': {'version': 'v2'}, 'extra': {'flag': 'yes'}})

    assert config.get('model.version') == 'v2'
    assert config.get('model.key') == 'popularity-model'
    assert config.get_bool('extra.flag') is True


def test_get_path_expands_home(config):
    path = config.get_path('cache.db_path')
    assert isinstance(path, Path)
    assert '~' not in str(path)


def test_typed_getters_fall_back(config):
    config.set('download.timeout', 'soon')
    assert config.get_int('download.timeout', 60) == 60


def test_to_dict_is_a_copy(config):
    data = config.to_dict()
    data['model']['version'] = 'mutated'
    assert config.get('model.version') != 'mutated'


def test_deep_merge_does_not_mutate_inputs():
    result = deep_merge(DEFAULT_CONFIG, {'cache': {'ttl_days': 7}})

    assert result['cache']['ttl_days'] == 7
    assert result['cache']['db_path'] == DEFAULT_CONFIG['cache']['db_path']
    assert DEFAULT_CONFIG['cache']['ttl_days'] == 30
