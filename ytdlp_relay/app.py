import logging

from flask import Flask, Response, jsonify, render_template, request

from . import config
from .extractor import ExtractorLaunchError, build_command, spawn
from .relay import Relay

app = Flask(__name__)
app.config.from_object(config)
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def plain_text(body, status):
    return Response(body, status=status, mimetype='text/plain')


@app.route('/')
def index():
    """Download page."""
    return render_template('index.html')


@app.route('/health')
def health():
    return jsonify({'status': 'healthy'})


@app.route('/download', methods=['POST'])
def download():
    data = request.get_json(silent=True) or {}
    url = data.get('url') if isinstance(data, dict) else None

    if not url or not isinstance(url, str):
        return plain_text('No URL provided', 400)

    logger.info(f"Download requested: {url}")
    relay = Relay(url)
    cmd = build_command(url, app.config['EXTRACTOR_COMMAND'], app.config['OUTPUT_FORMAT'])

    # Spawn and wait for the first chunk before building the response, so a
    # tool that cannot start or dies silently is still a clean 500
    try:
        relay.attach(spawn(cmd, kill_timeout=app.config['KILL_TIMEOUT']))
        relay.start(app.config['CHUNK_SIZE'])
    except ExtractorLaunchError as e:
        logger.error(f"Download failed for {url}: {e}")
        if not relay.finished:
            relay.abort('launch failed')
        return plain_text('Download failed', 500)

    response = Response(
        relay.stream(app.config['CHUNK_SIZE']),
        mimetype=app.config['OUTPUT_MIMETYPE'],
        headers={'Content-Disposition': f"attachment; filename={app.config['OUTPUT_FILENAME']}"},
    )
    # Covers a body that is closed before its first chunk was pulled
    response.call_on_close(relay.process.kill)
    return response


def main():
    logger.info(f"Server running on http://localhost:{config.PORT}")
    app.run(host=config.HOST, port=config.PORT, threaded=True)


if __name__ == '__main__':
    main()
