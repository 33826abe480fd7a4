import uuid

from sqlalchemy.exc import OperationalError

from vidtube.extensions import db
from vidtube.models import Playlist
from vidtube.utils.services.media import public_id_from_url


def test_playlist_crud_and_membership(client, make_user, publish_video):
    a_headers, a = make_user('alice')
    b_headers, _ = make_user('bob')
    v1 = publish_video(a_headers, title='one')
    v2 = publish_video(a_headers, title='two')

    assert client.post('/api/v1/playlist/', headers=a_headers, json={'description': 'x'}).status_code == 400
    resp = client.post('/api/v1/playlist/', headers=a_headers, json={'name': 'Favs'})
    assert resp.status_code == 201
    pid = resp.get_json()['data']['id']

    add = f"/api/v1/playlist/add/{{}}/{pid}"
    assert client.patch(add.format(v2['id']), headers=a_headers).status_code == 200
    resp = client.patch(add.format(v1['id']), headers=a_headers)
    assert resp.get_json()['data']['totalVideos'] == 2
    # adding twice is a no-op
    resp = client.patch(add.format(v1['id']), headers=a_headers)
    assert resp.status_code == 200
    assert resp.get_json()['data']['totalVideos'] == 2
    assert client.patch(add.format(v1['id']), headers=b_headers).status_code == 403

    data = client.get(f'/api/v1/playlist/{pid}', headers=b_headers).get_json()['data']
    assert [v['title'] for v in data['videos']] == ['two', 'one']

    listed = client.get(f"/api/v1/playlist/user/{a['id']}", headers=b_headers).get_json()['data']
    assert listed[0]['name'] == 'Favs' and listed[0]['totalVideos'] == 2

    remove = f"/api/v1/playlist/remove/{{}}/{pid}"
    assert client.patch(remove.format(v2['id']), headers=a_headers).get_json()['data']['totalVideos'] == 1
    assert client.patch(remove.format(v2['id']), headers=a_headers).status_code == 404


def test_playlist_update_and_delete(client, make_user):
    a_headers, _ = make_user('cleo')
    b_headers, _ = make_user('dirk')
    pid = client.post('/api/v1/playlist/', headers=a_headers, json={'name': 'Old'}).get_json()['data']['id']
    url = f'/api/v1/playlist/{pid}'

    assert client.patch(url, headers=a_headers, json={}).status_code == 400
    assert client.patch(url, headers=b_headers, json={'name': 'x'}).status_code == 403
    resp = client.patch(url, headers=a_headers, json={'name': 'New', 'description': 'desc'})
    assert resp.get_json()['data']['name'] == 'New'
    assert resp.get_json()['data']['description'] == 'desc'

    assert client.delete(url, headers=b_headers).status_code == 403
    assert client.delete(url, headers=a_headers).status_code == 200
    assert db.session.get(Playlist, uuid.UUID(pid)) is None
    assert client.get(url, headers=a_headers).status_code == 404
    assert client.get('/api/v1/playlist/garbage', headers=a_headers).status_code == 400


def test_playlist_totals_count_only_visible_videos(client, make_user, publish_video):
    a_headers, a = make_user('faye')
    b_headers, _ = make_user('gabe')
    v1 = publish_video(a_headers, title='shown')
    v2 = publish_video(a_headers, title='hidden')
    pid = client.post('/api/v1/playlist/', headers=a_headers, json={'name': 'Mix'}).get_json()['data']['id']
    for vid in (v1['id'], v2['id']):
        client.patch(f'/api/v1/playlist/add/{vid}/{pid}', headers=a_headers)
    client.patch(f"/api/v1/videos/toggle/publish/{v2['id']}", headers=a_headers)

    detail = client.get(f'/api/v1/playlist/{pid}', headers=b_headers).get_json()['data']
    listed = client.get(f"/api/v1/playlist/user/{a['id']}", headers=b_headers).get_json()['data']
    assert [v['title'] for v in detail['videos']] == ['shown']
    assert detail['totalVideos'] == listed[0]['totalVideos'] == 1

    # the owner still sees the draft in both
    detail = client.get(f'/api/v1/playlist/{pid}', headers=a_headers).get_json()['data']
    listed = client.get(f"/api/v1/playlist/user/{a['id']}", headers=a_headers).get_json()['data']
    assert detail['totalVideos'] == listed[0]['totalVideos'] == 2


def test_dashboard_stats_empty_channel(client, make_user):
    headers, _ = make_user('ezra')
    stats = client.get('/api/v1/dashboard/stats', headers=headers).get_json()['data']
    assert stats == {
        'totalVideos': 0, 'totalViews': 0, 'totalLikes': 0, 'totalComments': 0,
        'subscribers': 0, 'subscribedTo': 0, 'totalTweets': 0,
    }


def test_dashboard_stats_and_videos(client, make_user, publish_video):
    a_headers, a = make_user('faye')
    b_headers, _ = make_user('glen')
    v1 = publish_video(a_headers, title='one')
    publish_video(a_headers, title='two')

    client.get(f"/api/v1/videos/{v1['id']}", headers=b_headers)
    client.get(f"/api/v1/videos/{v1['id']}", headers=b_headers)
    client.post(f"/api/v1/likes/toggle/v/{v1['id']}", headers=b_headers)
    client.post(f"/api/v1/comments/{v1['id']}", headers=b_headers, json={'content': 'hi'})
    client.post(f"/api/v1/subscriptions/c/{a['id']}", headers=b_headers)
    client.post('/api/v1/tweets/', headers=a_headers, json={'content': 'hello'})

    stats = client.get('/api/v1/dashboard/stats', headers=a_headers).get_json()['data']
    assert stats['totalVideos'] == 2
    assert stats['totalViews'] == 2
    assert stats['totalLikes'] == 1
    assert stats['totalComments'] == 1
    assert stats['subscribers'] == 1
    assert stats['subscribedTo'] == 0
    assert stats['totalTweets'] == 1

    videos = client.get('/api/v1/dashboard/videos', headers=a_headers).get_json()['data']
    assert len(videos) == 2
    by_title = {v['title']: v for v in videos}
    assert by_title['one']['likes'] == 1
    assert set(by_title['one']['createdAt']) == {'year', 'month', 'day'}


def test_healthcheck(client):
    resp = client.get('/api/v1/healthcheck/')
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['dbStatus'] == 'connected'
    assert data['message'] == 'OK'
    assert 'uptime' in data and 'timestamp' in data


def test_healthcheck_reports_database_down(client, monkeypatch):
    def broken_execute(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('database is gone'))

    monkeypatch.setattr(db.session, 'execute', broken_execute)
    resp = client.get('/api/v1/healthcheck/')
    assert resp.status_code == 503
    body = resp.get_json()
    assert body['message'] == 'Error' and body['success'] is False
    assert body['data']['dbStatus'] == 'disconnected'
    assert body['data']['message'] == 'Error'


def test_unknown_route_uses_error_envelope(client):
    resp = client.get('/api/v1/nothing-here')
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['success'] is False and body['data'] is None


def test_public_id_from_url():
    url = 'https://res.cloudinary.com/demo/image/upload/v1712345/vidtube/avatars/abc.jpg'
    assert public_id_from_url(url) == 'vidtube/avatars/abc'
    assert public_id_from_url('https://res.cloudinary.com/demo/video/upload/clip.mp4') == 'clip'
    assert public_id_from_url('https://example.com/no-marker.png') is None
    assert public_id_from_url('') is None
