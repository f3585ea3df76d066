"""
Opening raw CSV sources from local files or HTTP(S) URLs.
"""

import io
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

import requests

from urbanflux.core.errors import SourceError
from urbanflux.observability.logger import get_logger

logger = get_logger(__name__)

HTTP_TIMEOUT_SECONDS = 120
USER_AGENT = "UrbanFlux-ETL/0.1"


def is_url(location: str | Path) -> bool:
    return isinstance(location, str) and location.lower().startswith(("http://", "https://"))


def _open_url(url: str, encoding: str) -> tuple[TextIO, requests.Session]:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Accept": "text/csv"})
    try:
        response = session.get(url, stream=True, timeout=HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        session.close()
        raise SourceError(f"Cannot open source {url}: {e}") from e

    response.raw.decode_content = True
    stream = io.TextIOWrapper(response.raw, encoding=encoding, errors="replace", newline="")
    return stream, session


@contextmanager
def open_source(location: str | Path, encoding: str = "utf-8-sig") -> Iterator[TextIO]:
    """
    Open a CSV source as a text stream.

    Args:
        location: Local file path or http(s) URL
        encoding: Text encoding of the source (a leading byte-order mark is skipped)

    Yields:
        Text stream positioned at the header row

    Raises:
        SourceError: If the source cannot be opened
    """
    if is_url(location):
        logger.info(f"Streaming CSV from URL: {location}")
        stream, session = _open_url(str(location), encoding)
        try:
            yield stream
        finally:
            stream.close()
            session.close()
        return

    path = Path(location)
    logger.info(f"Opening CSV file for streaming: {path}")
    try:
        stream = open(path, encoding=encoding, errors="replace", newline="")
    except OSError as e:
        raise SourceError(f"Cannot open source {path}: {e}") from e

    with stream:
        yield stream
