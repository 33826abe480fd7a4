import os
import uuid

from vidtube.models import Comment, Like, PlaylistVideo, Video, WatchHistory

from conftest import image_file, video_file


def test_publish_video(client, make_user, publish_video, media_calls, staging_dir):
    headers, user = make_user('alice')
    data = publish_video(headers, title='  Hello  ')
    assert data['title'] == 'Hello'
    assert data['duration'] == 12.5
    assert data['isPublished'] is True
    assert data['owner'] == user['id']
    folders = [opts['folder'] for _, opts in media_calls['upload'][-2:]]
    assert folders == ['vidtube/videos', 'vidtube/thumbnails']
    assert os.listdir(staging_dir) == []


def test_publish_requires_fields_and_files(client, make_user, staging_dir):
    headers, _ = make_user('bob')
    resp = client.post('/api/v1/videos/', headers=headers, data={
        'title': 'x', 'description': 'y', 'videoFile': video_file(),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400

    resp = client.post('/api/v1/videos/', headers=headers, data={
        'title': '', 'description': 'y', 'videoFile': video_file(), 'thumbnail': image_file(),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400

    resp = client.post('/api/v1/videos/', headers=headers, data={
        'title': 'x', 'description': 'y', 'videoFile': image_file('clip.png'), 'thumbnail': image_file(),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400

    resp = client.post('/api/v1/videos/', headers=headers, data={
        'title': 'x', 'description': 'y', 'videoFile': video_file(), 'thumbnail': image_file('thumb.exe'),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400
    assert Video.query.count() == 0
    assert os.listdir(staging_dir) == []


def test_publish_thumbnail_upload_failure(client, make_user, media_calls, staging_dir, monkeypatch):
    import cloudinary.uploader
    from cloudinary.exceptions import Error as CloudinaryError

    headers, _ = make_user('bea')
    recording_upload = cloudinary.uploader.upload

    def upload(path, **options):
        if options.get('folder') == 'vidtube/thumbnails':
            raise CloudinaryError('thumbnail rejected')
        return recording_upload(path, **options)

    monkeypatch.setattr(cloudinary.uploader, 'upload', upload)
    resp = client.post('/api/v1/videos/', headers=headers, data={
        'title': 'x', 'description': 'y', 'videoFile': video_file(), 'thumbnail': image_file('thumb.jpg'),
    }, content_type='multipart/form-data')
    assert resp.status_code == 400
    assert Video.query.count() == 0
    # the already uploaded video asset is removed from the host
    public_id, opts = media_calls['destroy'][-1]
    assert public_id.startswith('vidtube/videos/')
    assert opts['resource_type'] == 'video'
    assert os.listdir(staging_dir) == []


def test_get_video_counts_view_and_history(client, make_user, publish_video):
    owner_headers, owner = make_user('carol')
    viewer_headers, _ = make_user('dan')
    video = publish_video(owner_headers)

    client.post(f"/api/v1/subscriptions/c/{owner['id']}", headers=viewer_headers)
    client.post(f"/api/v1/likes/toggle/v/{video['id']}", headers=viewer_headers)

    resp = client.get(f"/api/v1/videos/{video['id']}", headers=viewer_headers)
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['views'] == 1
    assert data['likesCount'] == 1
    assert data['commentsCount'] == 0
    assert data['isLiked'] is True
    assert data['owner']['username'] == 'carol'
    assert data['owner']['subscribersCount'] == 1
    assert data['owner']['isSubscribed'] is True

    resp = client.get(f"/api/v1/videos/{video['id']}", headers=viewer_headers)
    assert resp.get_json()['data']['views'] == 2
    assert WatchHistory.query.count() == 1

    history = client.get('/api/v1/users/history', headers=viewer_headers).get_json()['data']
    assert [h['id'] for h in history] == [video['id']]
    assert history[0]['owner']['username'] == 'carol'


def test_get_video_invalid_and_unknown_ids(client, make_user):
    headers, _ = make_user('erin')
    assert client.get('/api/v1/videos/not-a-uuid', headers=headers).status_code == 400
    assert client.get(f'/api/v1/videos/{uuid.uuid4()}', headers=headers).status_code == 404


def test_unpublished_video_hidden_from_others(client, make_user, publish_video):
    owner_headers, owner = make_user('fay')
    other_headers, _ = make_user('gus')
    video = publish_video(owner_headers)

    resp = client.patch(f"/api/v1/videos/toggle/publish/{video['id']}", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.get_json()['data'] == {'isPublished': False}

    assert client.get(f"/api/v1/videos/{video['id']}", headers=other_headers).status_code == 404
    assert client.get(f"/api/v1/videos/{video['id']}", headers=owner_headers).status_code == 200

    listing = client.get('/api/v1/videos/', headers=other_headers).get_json()['data']
    assert listing['totalDocs'] == 0
    own = client.get(f"/api/v1/videos/?userId={owner['id']}", headers=owner_headers).get_json()['data']
    assert own['totalDocs'] == 1


def test_list_videos_filters_sorts_and_paginates(client, make_user, publish_video):
    a_headers, a = make_user('hana')
    b_headers, _ = make_user('ivan')
    publish_video(a_headers, title='Cooking pasta', description='dinner')
    publish_video(a_headers, title='Guitar basics', description='music lesson')
    publish_video(b_headers, title='Pasta sauce', description='italian')

    page = client.get('/api/v1/videos/?limit=2&page=1', headers=a_headers).get_json()['data']
    assert page['totalDocs'] == 3
    assert page['totalPages'] == 2
    assert page['hasNextPage'] is True and page['hasPrevPage'] is False
    assert len(page['docs']) == 2
    assert 'username' in page['docs'][0]['owner']

    found = client.get('/api/v1/videos/?query=PASTA&sortBy=title&sortType=asc', headers=a_headers)
    titles = [d['title'] for d in found.get_json()['data']['docs']]
    assert titles == ['Cooking pasta', 'Pasta sauce']

    mine = client.get(f"/api/v1/videos/?userId={a['id']}", headers=b_headers).get_json()['data']
    assert mine['totalDocs'] == 2

    assert client.get('/api/v1/videos/?userId=bogus', headers=a_headers).status_code == 400
    assert client.get('/api/v1/videos/?sortBy=likes', headers=a_headers).status_code == 400


def test_update_video_owner_only(client, make_user, publish_video, media_calls):
    owner_headers, _ = make_user('jill')
    other_headers, _ = make_user('kurt')
    video = publish_video(owner_headers)
    url = f"/api/v1/videos/{video['id']}"

    resp = client.patch(url, headers=other_headers, json={'title': 'hijack', 'description': 'x'})
    assert resp.status_code == 403

    assert client.patch(url, headers=owner_headers, json={'title': 'only title'}).status_code == 400

    resp = client.patch(url, headers=owner_headers, data={
        'title': 'New title', 'description': 'New description', 'thumbnail': image_file('t2.png'),
    }, content_type='multipart/form-data')
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['title'] == 'New title'
    assert data['thumbnail'] != video['thumbnail']
    assert len(media_calls['destroy']) == 1


def test_delete_video_cascades(client, make_user, publish_video, media_calls):
    owner_headers, _ = make_user('lena')
    viewer_headers, _ = make_user('mo')
    video = publish_video(owner_headers)
    vid = video['id']

    client.get(f'/api/v1/videos/{vid}', headers=viewer_headers)
    comment = client.post(f'/api/v1/comments/{vid}', headers=viewer_headers,
                          json={'content': 'nice'}).get_json()['data']
    client.post(f"/api/v1/likes/toggle/c/{comment['id']}", headers=owner_headers)
    client.post(f'/api/v1/likes/toggle/v/{vid}', headers=viewer_headers)
    playlist = client.post('/api/v1/playlist/', headers=owner_headers, json={'name': 'Mine'}).get_json()['data']
    client.patch(f"/api/v1/playlist/add/{vid}/{playlist['id']}", headers=owner_headers)

    assert client.delete(f'/api/v1/videos/{vid}', headers=viewer_headers).status_code == 403
    assert client.delete(f'/api/v1/videos/{vid}', headers=owner_headers).status_code == 200

    assert Video.query.count() == 0
    assert Comment.query.count() == 0
    assert Like.query.count() == 0
    assert WatchHistory.query.count() == 0
    assert PlaylistVideo.query.count() == 0
    destroyed = {opts['resource_type'] for _, opts in media_calls['destroy']}
    assert destroyed == {'video', 'image'}
    assert client.get(f'/api/v1/videos/{vid}', headers=owner_headers).status_code == 404


def test_toggle_publish_not_owner(client, make_user, publish_video):
    owner_headers, _ = make_user('nina')
    other_headers, _ = make_user('omar')
    video = publish_video(owner_headers)
    resp = client.patch(f"/api/v1/videos/toggle/publish/{video['id']}", headers=other_headers)
    assert resp.status_code == 403
    resp = client.patch(f'/api/v1/videos/toggle/publish/{uuid.uuid4()}', headers=other_headers)
    assert resp.status_code == 404


def test_history_delete_entry_and_clear(client, make_user, publish_video):
    headers, _ = make_user('pia')
    v1 = publish_video(headers, title='one')
    v2 = publish_video(headers, title='two')
    client.get(f"/api/v1/videos/{v1['id']}", headers=headers)
    client.get(f"/api/v1/videos/{v2['id']}", headers=headers)

    history = client.get('/api/v1/users/history', headers=headers).get_json()['data']
    assert len(history) == 2

    resp = client.delete(f"/api/v1/users/history/{v1['id']}", headers=headers)
    assert resp.get_json()['data'] == {'removed': 1}
    resp = client.delete('/api/v1/users/history', headers=headers)
    assert resp.get_json()['data'] == {'removed': 1}
    assert client.get('/api/v1/users/history', headers=headers).get_json()['data'] == []
