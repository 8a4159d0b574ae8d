"""Tests for gateway API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeRetriever
from gateway.channel_pool import ChannelPool
from gateway.main import app
from gateway.reassembler import Reassembler
from gateway.repositories.partial_repository import PartialRepository
from gateway.service_locator import get_multipart_service
from gateway.services.multipart_service import MultipartService
from gateway.uploader import ChannelUploader

CDN_CONTENT = {
    "clip.part001.nitro": b"0123456789",
    "clip.part002.nitro": b"abcdef",
}


async def _no_sleep(seconds):
    return None


def _cdn_handler(request):
    name = request.url.path.rsplit("/", 1)[-1]
    if name not in CDN_CONTENT:
        return httpx.Response(404)
    return httpx.Response(200, content=CDN_CONTENT[name])


def _webhook_handler(request):
    return httpx.Response(200, json={"id": "msg-1", "channel_id": "chan-1"})


@pytest.fixture
def service(test_db):
    pool = ChannelPool(["https://hooks.test/api/webhooks/1/a"], cooldown_seconds=0.0)
    uploader = ChannelUploader(pool, client=httpx.AsyncClient(transport=httpx.MockTransport(_webhook_handler)))
    reassembler = Reassembler(
        FakeRetriever(),
        client=httpx.AsyncClient(transport=httpx.MockTransport(_cdn_handler)),
        sleep=_no_sleep,
    )
    return MultipartService(uploader=uploader, reassembler=reassembler)


@pytest.fixture
def client(service):
    """Create FastAPI test client wired to the test service."""
    app.dependency_overrides[get_multipart_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _record_clip():
    for index, (name, content) in enumerate(CDN_CONTENT.items(), start=1):
        PartialRepository.record_part(
            channel_id="chan-1",
            message_id=f"msg-{index}",
            directory_id=1,
            part_name=name,
            sequence_index=index,
            size_bytes=len(content),
            original_filename="clip.mp4",
            description="a clip",
            mime_type="application/octet-stream",
        )


def test_root_endpoint(client):
    """Test health check endpoint."""
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'running'
    assert 'X-Request-ID' in response.headers


def test_split_by_size(client):
    """Test splitting without channel upload."""
    response = client.post(
        '/multipart/split',
        files={'file': ('notes.txt', b'x' * 2500)},
        data={'split-method': 'size', 'part-size': '17', 'size-unit': 'KB', 'file-prefix': 'my notes'},
    )

    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    assert [part['name'] for part in body['parts']] == [
        'my_notes.part001.nitro',
        'my_notes.part002.nitro',
        'my_notes.part003.nitro',
    ]
    assert [part['size'] for part in body['parts']] == [1024, 1024, 452]
    assert not any(part['uploaded'] for part in body['parts'])


def test_split_empty_file(client):
    """Test splitting an empty file is rejected."""
    response = client.post('/multipart/split', files={'file': ('empty.bin', b'')})

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_INPUT'


def test_split_by_part_count_rejected(client):
    """Test fixed part count mode is rejected."""
    response = client.post(
        '/multipart/split',
        files={'file': ('a.bin', b'abc')},
        data={'split-method': 'parts', 'num-parts': '3'},
    )

    assert response.status_code == 400
    assert 'not supported' in response.json()['detail']


def test_split_and_upload(client):
    """Test split with webhook upload records parts."""
    response = client.post(
        '/multipart/split',
        files={'file': ('song.mp3', b'audio-bytes')},
        data={'use-webhook': 'true', 'directory-id': '4', 'file-description': 'demo'},
    )

    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    assert body['message'] == 'All 1 parts uploaded successfully'
    assert body['parts'][0]['name'] == 'song.part001.nitro'
    assert body['parts'][0]['message_id'] == 'msg-1'
    assert PartialRepository.name_exists('song.part001.nitro', 4)


def test_split_and_upload_name_conflict(client):
    """Test an existing part name aborts the upload."""
    PartialRepository.record_part(
        channel_id="chan-1",
        message_id="old",
        directory_id=1,
        part_name="song.part001.nitro",
        sequence_index=1,
        size_bytes=3,
        original_filename="song.mp3",
        description="",
        mime_type="application/octet-stream",
    )

    response = client.post(
        '/multipart/split',
        files={'file': ('song.mp3', b'audio-bytes')},
        data={'use-webhook': 'on'},
    )

    assert response.status_code == 409
    assert response.json()['code'] == 'NAME_CONFLICT'


def test_download(client):
    """Test download streams reassembled parts."""
    _record_clip()

    response = client.get('/multipart/files/clip.mp4/download?directory_id=1')

    assert response.status_code == 200
    assert response.content == b'0123456789abcdef'
    assert response.headers['content-length'] == '16'
    assert 'clip.mp4' in response.headers['content-disposition']


def test_download_unknown_file(client):
    """Test download of a file with no parts."""
    response = client.get('/multipart/files/missing.bin/download')

    assert response.status_code == 404
    assert response.json()['code'] == 'PART_NOT_FOUND'


def test_list_files(client):
    """Test listing logical files."""
    _record_clip()

    response = client.get('/multipart/files?directory_id=1&search=CLIP')

    assert response.status_code == 200
    files = response.json()['files']
    assert len(files) == 1
    assert files[0]['original_filename'] == 'clip.mp4'
    assert files[0]['size'] == 16
    assert files[0]['part_count'] == 2


def test_delete_file(client):
    """Test deleting a logical file's parts."""
    _record_clip()

    response = client.delete('/multipart/files/clip.mp4?directory_id=1')

    assert response.status_code == 200
    assert response.json()['deleted_parts'] == 2
    assert PartialRepository.list_parts('clip.mp4', 1) == []
