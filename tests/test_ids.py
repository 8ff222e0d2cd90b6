import random

from todo_engine.ids import IdGenerator


def test_ids_are_unique_within_a_session():
    gen = IdGenerator()
    ids = {gen.generate() for _ in range(2000)}
    assert len(ids) == 2000


def test_time_component_advances_even_when_clock_stalls():
    gen = IdGenerator(rng=random.Random(1), clock_ms=lambda: 1_700_000_000_000)
    first, second = gen.generate(), gen.generate()
    assert first[9:] != second[9:]
    assert int(second[9:], 36) == int(first[9:], 36) + 1


def test_shape_is_base36():
    value = IdGenerator().generate()
    assert len(value) > 9
    assert all(c in "0123456789abcdefghijklmnopqrstuvwxyz" for c in value)
