import logging

import requests
from PIL import Image

from config.settings import ARTWORK_TIMEOUT_SECONDS

_CHUNK_SIZE = 64 * 1024


def _normalize_artwork_file(path, *, max_size_px=None):
    """Rewrite ``path`` as a baseline RGB JPEG; cover atoms reject WebP/PNG-alpha."""
    try:
        with Image.open(path) as image:
            if image.format == "JPEG" and image.mode in ("RGB", "L") and not max_size_px:
                return True
            converted = image.convert("RGB")
        if max_size_px:
            converted.thumbnail((max_size_px, max_size_px))
        converted.save(path, format="JPEG", quality=90)
        return True
    except Exception:
        logging.warning("Artwork processing failed for %s", path, exc_info=True)
        return False


def download_artwork(artwork_url, target_path, *, timeout=ARTWORK_TIMEOUT_SECONDS, max_size_px=None):
    """Stream ``artwork_url`` into ``target_path`` and normalize it to JPEG.

    Returns ``True`` on success. Any failure returns ``False``; the target may
    then hold a partial file and must not be trusted.
    """
    url = str(artwork_url or "").strip()
    if not url:
        return False
    logging.info("Downloading artwork %s", url)
    try:
        with requests.get(url, stream=True, timeout=timeout) as resp:
            if resp.status_code != 200:
                logging.warning("Artwork download failed for %s (status=%s)", url, resp.status_code)
                return False
            written = 0
            with open(target_path, "wb") as handle:
                for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
                        written += len(chunk)
    except (requests.RequestException, OSError) as exc:
        logging.warning("Error downloading artwork %s: %s", url, exc)
        return False
    if not written:
        logging.warning("Artwork download returned no data for %s", url)
        return False
    if not _normalize_artwork_file(target_path, max_size_px=max_size_px):
        return False
    logging.info("Downloaded image to %s", target_path)
    return True
