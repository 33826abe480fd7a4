import io
import itertools
import os

import cloudinary.uploader
import pytest

from vidtube import create_app
from vidtube.config import TestingConfig
from vidtube.extensions import db
from vidtube.security_utils import reset_rate_limits
import vidtube.utils.uploads as uploads

PASSWORD = 'Str0ngPass1'
_counter = itertools.count(1)


@pytest.fixture(scope='session')
def test_config(tmp_path_factory):
    base = tmp_path_factory.mktemp('vidtube')

    class TestConfig(TestingConfig):
        LOG_DIR = str(base / 'logs')
        UPLOAD_TEMP_DIR = str(base / 'temp')

    return TestConfig


@pytest.fixture()
def media_calls(monkeypatch):
    """Replace the Cloudinary SDK calls; records uploads and deletions."""
    calls = {'upload': [], 'destroy': []}

    def fake_upload(path, **options):
        n = next(_counter)
        calls['upload'].append((path, options))
        folder = options.get('folder', 'vidtube')
        result = {
            'public_id': f'{folder}/asset{n}',
            'secure_url': f'https://res.cloudinary.com/test-cloud/image/upload/v1/{folder}/asset{n}.png',
            'resource_type': 'image',
        }
        if path.endswith('.mp4'):
            result.update({
                'resource_type': 'video',
                'duration': 12.5,
                'secure_url': f'https://res.cloudinary.com/test-cloud/video/upload/v1/{folder}/asset{n}.mp4',
            })
        return result

    def fake_destroy(public_id, **options):
        calls['destroy'].append((public_id, options))
        return {'result': 'ok'}

    monkeypatch.setattr(cloudinary.uploader, 'upload', fake_upload)
    monkeypatch.setattr(cloudinary.uploader, 'destroy', fake_destroy)
    # libmagic may or may not be installed; keep the sniff deterministic
    monkeypatch.setattr(uploads, 'sniff_mime_stream', lambda stream: None)
    return calls


@pytest.fixture()
def app_ctx(test_config, media_calls):
    reset_rate_limits()
    app = create_app(test_config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app_ctx):
    return app_ctx.test_client()


@pytest.fixture()
def staging_dir(app_ctx):
    """UPLOAD_TEMP_DIR, emptied before the test runs."""
    path = app_ctx.config['UPLOAD_TEMP_DIR']
    os.makedirs(path, exist_ok=True)
    for name in os.listdir(path):
        os.remove(os.path.join(path, name))
    return path


def image_file(name='avatar.png'):
    return (io.BytesIO(b'\x89PNG\r\n\x1a\n' + b'\x00' * 64), name)


def video_file(name='clip.mp4'):
    return (io.BytesIO(b'\x00\x00\x00\x18ftypmp42' + b'\x00' * 64), name)


def register(client, username, email=None, password=PASSWORD, fullname=None, cover=False):
    data = {
        'username': username,
        'email': email or f'{username}@example.com',
        'fullname': fullname or username.title(),
        'password': password,
        'avatar': image_file(),
    }
    if cover:
        data['coverImage'] = image_file('cover.jpg')
    return client.post('/api/v1/users/register', data=data, content_type='multipart/form-data')


def login(client, username, password=PASSWORD):
    resp = client.post('/api/v1/users/login', json={'username': username, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()['data']
    return {'Authorization': f"Bearer {body['accessToken']}"}, body


@pytest.fixture()
def make_user(client):
    """Register + login; returns (headers, user dict)."""
    def _make(username):
        assert register(client, username).status_code == 201
        headers, body = login(client, username)
        return headers, body['user']
    return _make


@pytest.fixture()
def publish_video(client):
    def _publish(headers, title='My clip', description='A short clip'):
        resp = client.post('/api/v1/videos/', headers=headers, data={
            'title': title,
            'description': description,
            'videoFile': video_file(),
            'thumbnail': image_file('thumb.jpg'),
        }, content_type='multipart/form-data')
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()['data']
    return _publish
