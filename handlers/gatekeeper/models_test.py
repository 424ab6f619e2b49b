from configparser import ConfigParser

import pytest

from .config import SpaceRole
from .exceptions import ConfigError
from .models import Member, Spaces


def make_config(**groups):
    config = ConfigParser()
    config.read_dict({"telegram": {"admin": "42"}, "groups": groups})
    return config


def test_spaces_from_config():
    spaces = Spaces.from_config(make_config(entry="-1", companion="-2", main="-3"))

    assert spaces == Spaces(entry=-1, companion=-2, main=-3, operator=42)
    assert spaces.role_of(-2) == SpaceRole.COMPANION
    assert spaces.role_of(99) is None
    assert spaces.is_entry(-1)
    assert not spaces.is_entry(-3)


def test_spaces_missing_group():
    with pytest.raises(ConfigError):
        Spaces.from_config(make_config(entry="-1", companion="", main="-3"))


def test_spaces_invalid_group():
    with pytest.raises(ConfigError):
        Spaces.from_config(make_config(entry="-1", companion="group-a", main="-3"))


def test_member_handle():
    assert Member(id=1, username="alice").handle == "@alice"
    assert Member(id=1).handle == "1"
    assert Member(id=1).describe() == "User 1 (ID: 1)"
