from __future__ import annotations

from pathlib import Path

import pytest
from mutagen.id3 import ID3, TIT2

import metadata.tagger as tagging
from metadata.tagger import apply_tags

_TAGS = {"title": "My Song: Live!", "artist": "Unknown Artist", "album": "Unknown Album"}
# A few bytes shaped like an ADTS frame header; mutagen only rewrites the ID3 prefix.
_ADTS_PAYLOAD = b"\xff\xf1\x50\x80\x02\x1f\xfc" + b"\x00" * 32


def test_apply_tags_writes_id3_frames_and_cover_to_adts(tmp_path: Path) -> None:
    path = tmp_path / "song.temp.aac"
    path.write_bytes(_ADTS_PAYLOAD)
    cover = tmp_path / "song.temp.jpg"
    cover.write_bytes(b"\xff\xd8\xff\xe0jpeg")

    changed = apply_tags(str(path), _TAGS, str(cover), source_uri="https://example/video1")

    assert changed is True
    tags = ID3(str(path))
    assert tags.getall("TIT2")[0].text[0] == "My Song: Live!"
    assert tags.getall("TPE1")[0].text[0] == "Unknown Artist"
    assert tags.getall("TALB")[0].text[0] == "Unknown Album"
    assert tags.getall("APIC")[0].data == b"\xff\xd8\xff\xe0jpeg"
    assert tags.getall("TXXX:SOURCE_URI")[0].text[0] == "https://example/video1"
    assert path.read_bytes().endswith(_ADTS_PAYLOAD)


def test_apply_tags_keeps_encoder_tags_without_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "song.temp.aac"
    path.write_bytes(_ADTS_PAYLOAD)
    existing = ID3()
    existing.add(TIT2(encoding=3, text=["Encoder Title"]))
    existing.save(str(path))

    apply_tags(str(path), _TAGS, None)

    assert ID3(str(path)).getall("TIT2")[0].text[0] == "Encoder Title"


def test_apply_tags_without_changes_leaves_file_untouched(tmp_path: Path) -> None:
    path = tmp_path / "song.temp.aac"
    path.write_bytes(_ADTS_PAYLOAD)

    apply_tags(str(path), _TAGS, None)
    first = path.read_bytes()
    changed = apply_tags(str(path), _TAGS, None)

    assert changed is False
    assert path.read_bytes() == first


def test_apply_tags_fills_missing_mp4_atoms(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "song.temp.m4a"
    path.write_bytes(b"")
    cover = tmp_path / "song.temp.jpg"
    cover.write_bytes(b"jpeg-bytes")

    class FakeMP4:
        instance = None

        def __init__(self, file_path) -> None:
            self.file_path = file_path
            self.tags = {"\xa9nam": ["Encoder Title"]}
            self.saved = False
            FakeMP4.instance = self

        def add_tags(self) -> None:
            self.tags = {}

        def save(self) -> None:
            self.saved = True

    class FakeCover(bytes):
        FORMAT_JPEG = 13

        def __new__(cls, data, imageformat=None):
            obj = super().__new__(cls, data)
            obj.imageformat = imageformat
            return obj

    monkeypatch.setattr(tagging, "MP4", FakeMP4)
    monkeypatch.setattr(tagging, "MP4Cover", FakeCover)

    assert apply_tags(str(path), _TAGS, str(cover), source_uri="https://example/v") is True

    audio = FakeMP4.instance
    assert audio.saved is True
    assert audio.tags["\xa9nam"] == ["Encoder Title"]
    assert audio.tags["\xa9ART"] == ["Unknown Artist"]
    assert audio.tags["\xa9alb"] == ["Unknown Album"]
    assert bytes(audio.tags["covr"][0]) == b"jpeg-bytes"
    assert audio.tags["covr"][0].imageformat == FakeCover.FORMAT_JPEG
    assert audio.tags["----:com.apple.iTunes:SOURCE_URI"] == [b"https://example/v"]


def test_apply_tags_artwork_frame_failure_is_non_fatal(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "song.temp.aac"
    path.write_bytes(_ADTS_PAYLOAD)
    cover = tmp_path / "song.temp.jpg"
    cover.write_bytes(b"jpeg")

    def _raise(*_args, **_kwargs):
        raise RuntimeError("frame failure")

    monkeypatch.setattr(tagging, "APIC", _raise)

    assert apply_tags(str(path), _TAGS, str(cover)) is True
    tags = ID3(str(path))
    assert tags.getall("APIC") == []
    assert tags.getall("TIT2")[0].text[0] == "My Song: Live!"


def test_apply_tags_rejects_unknown_extension(tmp_path: Path) -> None:
    path = tmp_path / "song.ogg"
    path.write_bytes(b"")

    with pytest.raises(ValueError):
        apply_tags(str(path), _TAGS, None)
