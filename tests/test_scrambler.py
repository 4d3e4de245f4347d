from __future__ import annotations

import pytest

from hostveil.core.scrambler import Scrambler, UnitPermutation, derive_seed


@pytest.mark.parametrize("count", [1, 2, 3, 17, 256, 1000])
@pytest.mark.parametrize("password", ["pw", "another password", "ü-nicode"])
def test_permutation_visits_every_unit_once(count: int, password: str) -> None:
    order = list(UnitPermutation(count, Scrambler.from_password(password)))

    assert sorted(order) == list(range(count))


def test_permutation_is_deterministic_per_password() -> None:
    first = list(UnitPermutation(200, Scrambler.from_password("pw")))
    second = list(UnitPermutation(200, Scrambler.from_password("pw")))
    other = list(UnitPermutation(200, Scrambler.from_password("pw2")))

    assert first == second
    assert first != other


def test_permutation_refuses_extra_draws() -> None:
    permutation = UnitPermutation(2, Scrambler.from_password("pw"))
    permutation.draw()
    permutation.draw()

    with pytest.raises(IndexError):
        permutation.draw()


def test_last_draw_consumes_no_random_value() -> None:
    scrambler = Scrambler.from_password("pw")
    UnitPermutation(1, scrambler).draw()

    assert scrambler.next() == Scrambler.from_password("pw").next()


def test_permutation_selects_rank_among_remaining_units() -> None:
    scrambler = Scrambler.from_seed(1234)
    replay = Scrambler.from_seed(1234)

    remaining = list(range(10))
    expected = []
    while remaining:
        rank = 0 if len(remaining) == 1 else replay.next() % len(remaining)
        expected.append(remaining.pop(rank))

    assert list(UnitPermutation(10, scrambler)) == expected


def test_mask_is_its_own_inverse_after_reseed() -> None:
    scrambler = Scrambler.from_password("pw")
    data = bytes(range(256)) * 3

    masked = scrambler.reseed().mask(data)
    assert masked != data
    assert scrambler.reseed().mask(masked) == data


def test_reseed_rewinds_the_sequence() -> None:
    scrambler = Scrambler.from_password("pw")
    draws = [scrambler.next() for _ in range(5)]

    scrambler.reseed()
    assert [scrambler.next() for _ in range(5)] == draws
    assert all(0 <= value < 2 ** 31 for value in draws)


def test_seed_depends_on_password() -> None:
    assert derive_seed("pw") == derive_seed("pw")
    assert derive_seed("pw") != derive_seed("Pw")
