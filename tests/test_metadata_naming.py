from __future__ import annotations

import os

import pytest

from metadata.naming import MAX_STEM_BYTES, build_output_paths, sanitize_filename


def test_sanitize_filename_replaces_each_unsafe_char_with_dash() -> None:
    assert sanitize_filename('a/b\\c?d%e*f:g|h"i<j>k') == "a-b-c-d-e-f-g-h-i-j-k"


def test_sanitize_filename_keeps_spaces_and_punctuation() -> None:
    assert sanitize_filename("My Song: Live!") == "My Song- Live!"


@pytest.mark.parametrize("title", [None, ""])
def test_sanitize_filename_absent_title_uses_placeholder(title) -> None:
    assert sanitize_filename(title) == "Unknown Title"


@pytest.mark.parametrize(
    "title",
    ["plain", "a:b", '<<>>', "already-safe - name", "%%%", "x/y\\z", "Ünïcödé: ok?"],
)
def test_sanitize_filename_is_idempotent(title) -> None:
    once = sanitize_filename(title)
    assert sanitize_filename(once) == once


def test_sanitize_filename_does_not_deduplicate_distinct_titles() -> None:
    assert sanitize_filename("A:B") == sanitize_filename("A/B") == "A-B"


def test_build_output_paths_aac_variant(tmp_path) -> None:
    paths = build_output_paths(str(tmp_path), "My Song- Live!", "aac")

    assert paths.final_path == os.path.join(str(tmp_path), "My Song- Live!.aac")
    assert paths.temporary_path == os.path.join(str(tmp_path), "My Song- Live!.temp.aac")
    assert paths.artwork_path == os.path.join(str(tmp_path), "My Song- Live!.temp.jpg")


def test_build_output_paths_m4a_variant_never_collides_with_final(tmp_path) -> None:
    paths = build_output_paths(str(tmp_path), "Song", "m4a")

    assert paths.final_path.endswith("Song.m4a")
    assert paths.temporary_path.endswith("Song.temp.m4a")
    assert len({paths.final_path, paths.temporary_path, paths.artwork_path}) == 3


def test_build_output_paths_rejects_unknown_variant(tmp_path) -> None:
    with pytest.raises(ValueError):
        build_output_paths(str(tmp_path), "Song", "mp3")


@pytest.mark.parametrize(
    ("title", "stem"),
    [("Song.temp", "Song-temp"), ("Song.TEMP", "Song-TEMP"), ("Song.temperature", "Song.temperature")],
)
def test_sanitize_filename_never_ends_in_temp_marker(title, stem) -> None:
    assert sanitize_filename(title) == stem
    assert sanitize_filename(stem) == stem


def test_final_name_of_one_title_is_not_temporary_name_of_another(tmp_path) -> None:
    first = build_output_paths(str(tmp_path), sanitize_filename("Song.temp"), "aac")
    second = build_output_paths(str(tmp_path), sanitize_filename("Song"), "aac")

    assert first.final_path != second.temporary_path


def test_build_output_paths_rejects_stem_ending_in_temp_marker(tmp_path) -> None:
    with pytest.raises(ValueError):
        build_output_paths(str(tmp_path), "Song.temp", "aac")


def test_sanitize_filename_truncates_long_multibyte_titles_on_char_boundary(tmp_path) -> None:
    title = "日本語のとても長いタイトル" * 20

    stem = sanitize_filename(title)

    assert len(stem.encode("utf-8")) <= MAX_STEM_BYTES
    assert title.startswith(stem)
    paths = build_output_paths(str(tmp_path), stem, "m4a")
    for path in (paths.final_path, paths.temporary_path, paths.artwork_path):
        assert len(os.path.basename(path).encode("utf-8")) <= 255


def test_sanitize_filename_keeps_short_titles_whole() -> None:
    title = "x" * MAX_STEM_BYTES

    assert sanitize_filename(title) == title
