from __future__ import annotations

import pytest

from core.identity import normalize_community_id


def test_bare_ids_are_kept() -> None:
    assert normalize_community_id(987654321) == 987654321


def test_supergroup_marked_id_is_unwrapped() -> None:
    assert normalize_community_id(-100987654321) == 987654321


def test_basic_group_marked_id_is_unwrapped() -> None:
    assert normalize_community_id(-42) == 42


def test_zero_is_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_community_id(0)

