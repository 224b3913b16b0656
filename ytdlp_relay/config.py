import os
import shlex
import sys

# Server
HOST = os.environ.get('RELAY_HOST', '0.0.0.0')
PORT = int(os.environ.get('RELAY_PORT', '3000'))
LOG_LEVEL = os.environ.get('RELAY_LOG_LEVEL', 'INFO').upper()

# Extraction tool, run as "<command> -f mp4 -o - <url>"
_extractor = os.environ.get('RELAY_EXTRACTOR')
EXTRACTOR_COMMAND = shlex.split(_extractor) if _extractor else [sys.executable, '-m', 'yt_dlp']

# Output is fixed: one format, one content type, one suggested name
OUTPUT_FORMAT = 'mp4'
OUTPUT_MIMETYPE = 'video/mp4'
OUTPUT_FILENAME = 'video.mp4'

CHUNK_SIZE = int(os.environ.get('RELAY_CHUNK_SIZE', str(64 * 1024)))
# Seconds between SIGTERM and SIGKILL when tearing down a child
KILL_TIMEOUT = float(os.environ.get('RELAY_KILL_TIMEOUT', '5'))

# Where the download client finds the server
SERVER_URL = os.environ.get('RELAY_SERVER_URL', f'http://localhost:{PORT}')
