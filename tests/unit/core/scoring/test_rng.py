"""Tests for seeded generation and photo hashing."""

from __future__ import annotations

import base64

import pytest

from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.rng import (
    compute_image_hash,
    create_rng,
    generate_jitter_params,
    generate_noise,
    hash_to_seed,
    seeded_shuffle,
)

# SHA-256("abc")
_ABC_DIGEST = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestCreateRng:
    def test_same_seed_same_sequence(self):
        a, b = create_rng(42), create_rng(42)
        assert [a() for _ in range(20)] == [b() for _ in range(20)]

    def test_known_sequence_for_seed_42(self):
        rng = create_rng(42)
        assert [rng(), rng(), rng()] == [0.6011037519201636, 0.44829055899754167, 0.8524657934904099]

    def test_different_seeds_differ(self):
        a, b = create_rng(1), create_rng(2)
        assert [a() for _ in range(5)] != [b() for _ in range(5)]

    def test_values_in_unit_interval(self):
        rng = create_rng(0xDEADBEEF)
        for _ in range(500):
            value = rng()
            assert 0.0 <= value < 1.0

    def test_generators_do_not_share_state(self):
        a = create_rng(7)
        first = a()
        b = create_rng(7)
        a()
        assert b() == first


class TestHashing:
    def test_known_digest(self):
        assert compute_image_hash(b"abc") == _ABC_DIGEST

    def test_transport_does_not_change_hash(self):
        raw = b"\x89PNG\r\n\x1a\nsome-image"
        encoded = base64.b64encode(raw).decode()
        assert compute_image_hash(raw) == compute_image_hash(encoded)
        assert compute_image_hash(raw) == compute_image_hash(f"data:image/png;base64,{encoded}")

    def test_invalid_base64_raises(self):
        with pytest.raises(InvalidInputError, match="base64"):
            compute_image_hash("not base64!!")

    def test_empty_photo_raises(self):
        with pytest.raises(InvalidInputError, match="empty"):
            compute_image_hash(b"")

    def test_wrong_type_raises(self):
        with pytest.raises(InvalidInputError):
            compute_image_hash(12345)

    def test_hash_to_seed_uses_first_four_bytes(self):
        assert hash_to_seed("ffffffff" + "0" * 56) == 0xFFFFFFFF
        assert hash_to_seed("00000001abcdef") == 1
        assert hash_to_seed(_ABC_DIGEST) == 0xBA7816BF

    def test_hash_to_seed_rejects_non_hex(self):
        with pytest.raises(InvalidInputError):
            hash_to_seed("zzzzzzzz")


class TestJitter:
    def test_deterministic(self):
        assert generate_jitter_params(1234, 16) == generate_jitter_params(1234, 16)

    def test_count(self):
        assert len(generate_jitter_params(1, 16)) == 16
        assert generate_jitter_params(1, 0) == []

    def test_negative_count_raises(self):
        with pytest.raises(InvalidInputError):
            generate_jitter_params(1, -1)

    def test_ranges(self):
        for p in generate_jitter_params(99, 64):
            assert -2.0 <= p.rotation < 2.0
            assert 0.97 <= p.scale < 1.03
            assert -0.02 <= p.crop_x < 0.02
            assert -0.02 <= p.crop_y < 0.02
            assert 0.97 <= p.brightness < 1.03

    def test_to_dict_keys(self):
        data = generate_jitter_params(5, 1)[0].to_dict()
        assert set(data) == {"rotation", "scale", "crop_x", "crop_y", "brightness"}


class TestShuffleAndNoise:
    def test_shuffle_is_a_permutation(self):
        items = list(range(20))
        shuffled = seeded_shuffle(items, 3)
        assert sorted(shuffled) == items
        assert items == list(range(20))

    def test_shuffle_deterministic(self):
        assert seeded_shuffle("abcdefgh", 11) == seeded_shuffle("abcdefgh", 11)

    def test_noise_within_magnitude(self):
        noise = generate_noise(8, 100, magnitude=0.2)
        assert len(noise) == 100
        assert all(-0.2 <= n < 0.2 for n in noise)
        assert noise == generate_noise(8, 100, magnitude=0.2)
