import logging
import re
from urllib.parse import urljoin, urlsplit

import requests

from . import config
from .ui import DownloadControls, MessageBoard

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = 'video.mp4'
EMPTY_URL_MESSAGE = 'Please enter a video URL'
INVALID_URL_MESSAGE = 'Please enter a valid URL (include http:// or https://)'
FAILURE_PREFIX = 'Failed to download video. '
UNREACHABLE_MESSAGE = 'Cannot connect to server. Please check if the server is running.'
NOT_FOUND_MESSAGE = 'Download endpoint not found. Check server configuration.'
INTERRUPTED_MESSAGE = 'The download was cut off before it finished.'
SUCCESS_MESSAGE = 'Download started!'

FILENAME_RE = re.compile(r"""filename[^;=\n]*=((['"]).*?\2|[^;\n]*)""")
SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*:')
# Schemes that need a host, like the browser URL parser requires
HOST_SCHEMES = {'http', 'https', 'ws', 'wss', 'ftp'}


class DownloadError(Exception):
    """Carries the one message shown to the user for a failed attempt."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class InvalidURLError(DownloadError):
    pass


def validate_url(raw):
    url = (raw or '').strip()
    if not url:
        raise InvalidURLError(EMPTY_URL_MESSAGE)
    if not SCHEME_RE.match(url):
        raise InvalidURLError(INVALID_URL_MESSAGE)
    try:
        parts = urlsplit(url)
        parts.port  # raises on a malformed port
    except ValueError:
        raise InvalidURLError(INVALID_URL_MESSAGE)
    if parts.scheme.lower() in HOST_SCHEMES:
        if not parts.hostname or any(c.isspace() for c in parts.netloc):
            raise InvalidURLError(INVALID_URL_MESSAGE)
    return url


def derive_filename(content_disposition, default=DEFAULT_FILENAME):
    if not content_disposition:
        return default
    match = FILENAME_RE.search(content_disposition)
    if match and match.group(1):
        name = re.sub(r"""['"]""", '', match.group(1)).strip()
        if name:
            return name
    return default


def error_message(response):
    """Best human-readable reason for a non-success response."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        text = data.get('message') or data.get('error')
        if text:
            return str(text)
    if response.text and response.text.strip():
        return response.text.strip()
    return response.reason or f"Server error: {response.status_code}"


class DownloadHandler:
    """
    Runs one download attempt from the input field to the saved file.

    Collaborators are passed in rather than looked up:
      url_input -- has `value` and focus()
      button    -- has `disabled` and `text`
      messages  -- a MessageBoard
      save      -- callable(filename, data)
    """

    def __init__(self, url_input, button, messages, save,
                 session=None, server_url=None):
        self.url_input = url_input
        self.controls = DownloadControls(button, messages)
        self.messages = messages
        self.save = save
        self.session = session or requests.Session()
        self.endpoint = urljoin(server_url or config.SERVER_URL, '/download')

    @classmethod
    def with_sink(cls, url_input, button, sink, save, scheduler=None, **kwargs):
        return cls(url_input, button, MessageBoard(sink, scheduler), save, **kwargs)

    def submit(self):
        """Returns the saved filename, or None when the attempt failed."""
        self.messages.hide()
        try:
            url = validate_url(self.url_input.value)
        except InvalidURLError as e:
            self.messages.error(e.message)
            self.url_input.focus()
            return None

        self.controls.begin()
        try:
            filename = self._download(url)
        except DownloadError as e:
            logger.error(f"Download error: {e.message}")
            self.messages.error(FAILURE_PREFIX + e.message)
            return None
        finally:
            self.controls.end()

        self.messages.success(SUCCESS_MESSAGE)
        self.url_input.value = ''
        return filename

    def _download(self, url):
        logger.info(f"Sending request to download: {url}")
        try:
            response = self.session.post(self.endpoint, json={'url': url})
        except requests.ConnectionError as e:
            logger.debug(f"Connection failed: {e}")
            raise DownloadError(UNREACHABLE_MESSAGE)
        except requests.exceptions.ChunkedEncodingError as e:
            # The relay drops the connection when the tool fails mid-stream
            logger.debug(f"Truncated body: {e}")
            raise DownloadError(INTERRUPTED_MESSAGE)
        except requests.RequestException as e:
            raise DownloadError(str(e))

        logger.info(f"Response status: {response.status_code}")
        if not response.ok:
            if response.status_code == 404:
                raise DownloadError(NOT_FOUND_MESSAGE)
            raise DownloadError(error_message(response))

        content_type = response.headers.get('Content-Type')
        if content_type and 'video' not in content_type and 'octet-stream' not in content_type:
            logger.warning(f"Unexpected content type: {content_type}")

        data = response.content
        if not data:
            raise DownloadError('Downloaded file is empty')

        filename = derive_filename(response.headers.get('Content-Disposition'))
        try:
            self.save(filename, data)
        except OSError as e:
            raise DownloadError(f"Could not save {filename}: {e}")
        return filename
