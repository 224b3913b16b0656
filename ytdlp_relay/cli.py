import argparse
import logging
import os
import sys

from werkzeug.utils import secure_filename

from . import config
from .client import DEFAULT_FILENAME, DownloadHandler

logger = logging.getLogger('ytdlp_relay.cli')


class TerminalInput:
    def __init__(self, value=''):
        self.value = value

    def focus(self):
        pass


class TerminalButton:
    def __init__(self, text='Download'):
        self.text = text
        self.disabled = False


class LogSink:
    """Prints messages through the logger instead of a page element."""

    def show(self, kind, text):
        if kind == 'error':
            logger.error(f"❌ {text}")
        else:
            logger.info(f"✅ {text}")

    def hide(self):
        pass


class ImmediateScheduler:
    # A one-shot command has nothing to hide later
    def call_later(self, delay, callback):
        return self

    def cancel(self):
        pass


def save_to_directory(directory):
    def save(filename, data):
        name = secure_filename(filename) or DEFAULT_FILENAME
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, name)
        with open(path, 'wb') as f:
            f.write(data)
        logger.info(f"Saved {len(data)} bytes to {path}")
    return save


def main(argv=None, session=None):
    parser = argparse.ArgumentParser(description="Download a video through a ytdlp-relay server")
    parser.add_argument("url", help="Video page URL")
    parser.add_argument("--server", default=config.SERVER_URL, help="Relay server base URL")
    parser.add_argument("--output", default=".", help="Directory to save the file in")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s'
    )

    handler = DownloadHandler.with_sink(
        TerminalInput(args.url),
        TerminalButton(),
        LogSink(),
        save_to_directory(args.output),
        scheduler=ImmediateScheduler(),
        session=session,
        server_url=args.server,
    )
    return 0 if handler.submit() else 1


if __name__ == '__main__':
    sys.exit(main())
