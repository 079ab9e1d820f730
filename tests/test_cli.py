"""Tests for the command-line interface."""

import logging

import pytest

from viral_score.cli import parse_args, run_cache
from viral_score.config import get_global_config
from viral_score.storage import ArtifactCache

logger = logging.getLogger(__name__)


@pytest.fixture
def db_path(tmp_path):
    config = get_global_config()
    path = tmp_path / 'artifacts.db'
    config.set('cache.db_path', str(path))
    config.set('model.version', 'v1')
    yield path
    config.reload()


def test_parse_analyze():
    args = parse_args(['--model-version', 'v3', 'analyze', 'a.jpg', 'b.png', '--json'])

    assert args.command == 'analyze'
    assert args.images == ['a.jpg', 'b.png']
    assert args.json
    assert args.model_version == 'v3'


def test_parse_requires_command():
    with pytest.raises(SystemExit):
        parse_args([])


def test_cache_info_not_cached(db_path, capsys):
    assert run_cache(parse_args(['cache', 'info'])) == 0
    assert 'not cached' in capsys.readouterr().out


def test_cache_info_and_clear(db_path, capsys):
    cache = ArtifactCache(version='v1', db_path=db_path)
    cache.put('popularity-model', b'x' * 2048)
    cache.close()

    assert run_cache(parse_args(['cache', 'info'])) == 0
    out = capsys.readouterr().out
    assert 'version v1 (current)' in out
    assert '2 KB' in out

    assert run_cache(parse_args(['cache', 'clear'])) == 0
    assert 'Removed 1' in capsys.readouterr().out
