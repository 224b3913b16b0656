from urllib.parse import urljoin

from ytdlp_relay import config
from ytdlp_relay.cli import main, save_to_directory

from conftest import FakeSession, make_response


def test_saves_into_output_directory(tmp_path):
    session = FakeSession(make_response(200, b'\x01' * 100, {
        'Content-Type': 'video/mp4',
        'Content-Disposition': 'attachment; filename="clip.mp4"',
    }))

    code = main(['https://example.com/v', '--output', str(tmp_path),
                 '--server', 'http://relay.local:3000'], session=session)

    assert code == 0
    assert session.calls == [('http://relay.local:3000/download', {'url': 'https://example.com/v'})]
    assert (tmp_path / 'clip.mp4').read_bytes() == b'\x01' * 100


def test_invalid_url_exits_nonzero(tmp_path):
    session = FakeSession()
    assert main(['not a url', '--output', str(tmp_path)], session=session) == 1
    assert session.calls == []


def test_server_failure_exits_nonzero(tmp_path):
    session = FakeSession(make_response(500, b'Download failed'))
    assert main(['https://example.com/v', '--output', str(tmp_path)], session=session) == 1
    assert list(tmp_path.iterdir()) == []


def test_saved_name_cannot_escape_directory(tmp_path):
    save_to_directory(str(tmp_path / 'out'))('../../evil.mp4', b'abc')
    assert (tmp_path / 'out' / 'evil.mp4').read_bytes() == b'abc'
    assert not (tmp_path / 'evil.mp4').exists()


def test_default_server_comes_from_config(tmp_path):
    session = FakeSession(make_response(200, b'abc', {'Content-Type': 'video/mp4'}))
    assert main(['https://example.com/v', '--output', str(tmp_path)], session=session) == 0
    assert session.calls[0][0] == urljoin(config.SERVER_URL, '/download')
