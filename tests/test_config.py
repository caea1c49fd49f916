import logging

import config


def test_environment_selects_log_level():
    assert config.CURRENT_CONFIG['log_level'] in ('INFO', 'WARNING')
    assert config.CURRENT_CONFIG['title'] == config.APP_CONFIG['title']


def test_setup_logging_accepts_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, 'basicConfig', lambda **kw: calls.update(kw))
    config.setup_logging('debug')
    assert calls['level'] == logging.DEBUG


def test_collection_window_is_one_hour():
    assert config.ENGINE_CONFIG['collection_window_minutes'] == 60
