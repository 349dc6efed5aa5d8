import logging
import os

from mutagen.id3 import APIC, ID3, TALB, TIT2, TPE1, TXXX
from mutagen.mp4 import MP4, MP4Cover

_SOURCE_TAG = "SOURCE_URI"


def apply_tags(file_path, tags, artwork_path=None, *, source_uri=None, allow_overwrite=False):
    """Fill tags and cover art into a transcoded file.

    With ``allow_overwrite=False`` only missing values are written, so tags the
    encoder already stored are kept. Returns ``True`` when the file changed.
    """
    artwork = _read_artwork(artwork_path)
    ext = os.path.splitext(file_path)[1].lower()
    if ext == ".aac":
        return _apply_id3_tags(file_path, tags or {}, artwork, source_uri, allow_overwrite)
    if ext in {".m4a", ".mp4"}:
        return _apply_mp4_tags(file_path, tags or {}, artwork, source_uri, allow_overwrite)
    raise ValueError(f"Unsupported file format for tagging: {ext or '(none)'}")


def _read_artwork(artwork_path):
    if not artwork_path or not os.path.isfile(artwork_path):
        return None
    try:
        with open(artwork_path, "rb") as handle:
            data = handle.read()
    except OSError:
        logging.warning("Failed to read artwork %s", artwork_path, exc_info=True)
        return None
    return data or None


def _apply_id3_tags(file_path, tags, artwork, source_uri, allow_overwrite):
    # ADTS carries tags only as a leading ID3v2 block.
    try:
        audio = ID3(file_path)
    except Exception:
        audio = ID3()
    changed = False
    changed |= _set_id3_text(audio, "TIT2", tags.get("title"), allow_overwrite)
    changed |= _set_id3_text(audio, "TPE1", tags.get("artist"), allow_overwrite)
    changed |= _set_id3_text(audio, "TALB", tags.get("album"), allow_overwrite)
    if source_uri:
        changed |= _set_id3_txxx(audio, _SOURCE_TAG, source_uri, allow_overwrite)
    if artwork and (allow_overwrite or not audio.getall("APIC")):
        if allow_overwrite:
            audio.delall("APIC")
        try:
            audio.add(APIC(encoding=3, mime="image/jpeg", type=3, desc="cover", data=artwork))
            changed = True
        except Exception:
            logging.warning("Failed to embed artwork for %s", file_path, exc_info=True)
    if changed:
        audio.save(file_path)
    return changed


def _apply_mp4_tags(file_path, tags, artwork, source_uri, allow_overwrite):
    audio = MP4(file_path)
    if audio.tags is None:
        audio.add_tags()
    mp4_tags = audio.tags
    changed = False
    changed |= _set_mp4_value(mp4_tags, "\xa9nam", tags.get("title"), allow_overwrite)
    changed |= _set_mp4_value(mp4_tags, "\xa9ART", tags.get("artist"), allow_overwrite)
    changed |= _set_mp4_value(mp4_tags, "\xa9alb", tags.get("album"), allow_overwrite)
    if source_uri:
        changed |= _set_mp4_freeform(mp4_tags, _SOURCE_TAG, source_uri, allow_overwrite)
    if artwork and (allow_overwrite or "covr" not in mp4_tags):
        mp4_tags["covr"] = [MP4Cover(artwork, imageformat=MP4Cover.FORMAT_JPEG)]
        changed = True
    if changed:
        audio.save()
    return changed


def _set_id3_text(audio, frame_id, value, allow_overwrite):
    if value is None or value == "":
        return False
    if audio.getall(frame_id):
        if not allow_overwrite:
            return False
        audio.delall(frame_id)
    frame_map = {
        "TIT2": TIT2,
        "TPE1": TPE1,
        "TALB": TALB,
    }
    audio.add(frame_map[frame_id](encoding=3, text=[str(value)]))
    return True


def _set_id3_txxx(audio, desc, value, allow_overwrite):
    existing = [frame for frame in audio.getall("TXXX") if frame.desc == desc]
    if existing:
        if not allow_overwrite:
            return False
        audio.delall(f"TXXX:{desc}")
    audio.add(TXXX(encoding=3, desc=desc, text=[str(value)]))
    return True


def _set_mp4_value(tags, key, value, allow_overwrite):
    if value is None or value == "":
        return False
    if key in tags and not allow_overwrite:
        return False
    tags[key] = [str(value)]
    return True


def _set_mp4_freeform(tags, key, value, allow_overwrite):
    atom = f"----:com.apple.iTunes:{key}"
    if atom in tags and not allow_overwrite:
        return False
    tags[atom] = [str(value).encode("utf-8")]
    return True
