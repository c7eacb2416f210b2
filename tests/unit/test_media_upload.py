"""Tests for the chunked media upload state machine."""

import math

import httpx
import pytest

from tests.fixtures.mock_http import media_status_response, multipart_fields, multipart_file
from xurl.api import media
from xurl.api.client import ApiClient
from xurl.api.media import (
    MediaUploader,
    MediaUploadState,
    extract_media_id,
    extract_segment_index,
    is_media_append_request,
    send_media_append,
)
from xurl.auth.selector import AuthSelector
from xurl.core.exceptions import ApiError, MediaIdNotSetError, ProtocolError, StorageError

MEDIA_ID = "1880028106020515840"


class MediaServer:
    """Scripted /2/media/upload endpoint."""

    def __init__(self, init_payload, finalize_payload=None, statuses=(), append_fail_at=None):
        self.init_payload = init_payload
        self.finalize_payload = finalize_payload or {"data": {"id": MEDIA_ID}}
        self.statuses = list(statuses)
        self.append_fail_at = append_fail_at
        self.appends = []
        self.commands = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("content-type", "").startswith("multipart/form-data"):
            fields = multipart_fields(request)
            command = fields["command"]
            self.commands.append(command)
            if len(self.appends) == self.append_fail_at:
                return httpx.Response(400, json={"errors": [{"message": "bad segment"}]})
            self.appends.append((fields, multipart_file(request)))
            return httpx.Response(204)
        command = request.url.params["command"]
        self.commands.append(command)
        if command == "INIT":
            return httpx.Response(202, json=self.init_payload)
        if command == "FINALIZE":
            return httpx.Response(200, json=self.finalize_payload)
        return httpx.Response(200, json=self.statuses.pop(0))


@pytest.fixture
def small_chunks(monkeypatch):
    monkeypatch.setattr(media, "CHUNK_SIZE", 10)
    return 10


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(media.time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def api(test_config, store):
    store.save_bearer_token("AAAA")
    client = ApiClient(test_config, AuthSelector(store))
    yield client
    client.close()


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"0123456789" * 4 + b"tail!")
    return path


def mount(mock_x_api, server):
    mock_x_api.route(path="/2/media/upload").mock(side_effect=server)
    return server


@pytest.mark.unit
class TestUploadSteps:
    """INIT, APPEND, FINALIZE individually."""

    def test_init_records_media_id(self, api, media_file, mock_x_api, media_init_response):
        server = mount(mock_x_api, MediaServer(media_init_response))
        uploader = MediaUploader(api, media_file)

        uploader.init("video/mp4", "amplify_video")

        assert uploader.media_id == MEDIA_ID
        assert uploader.expires_after_secs == 86400
        assert uploader.state is MediaUploadState.INITIALIZED
        request = mock_x_api.calls.last.request
        assert request.url.params["total_bytes"] == str(media_file.stat().st_size)
        assert request.url.params["media_type"] == "video/mp4"
        assert request.url.params["media_category"] == "amplify_video"
        assert server.commands == ["INIT"]

    def test_init_twice_is_protocol_error(self, api, media_file, mock_x_api, media_init_response):
        mount(mock_x_api, MediaServer(media_init_response))
        uploader = MediaUploader(api, media_file)
        uploader.init("video/mp4", "amplify_video")

        with pytest.raises(ProtocolError):
            uploader.init("video/mp4", "amplify_video")

    def test_append_sends_ceil_n_over_c_chunks(
        self, api, media_file, mock_x_api, media_init_response, small_chunks
    ):
        server = mount(mock_x_api, MediaServer(media_init_response))
        uploader = MediaUploader(api, media_file)
        uploader.init("video/mp4", "amplify_video")

        sent = uploader.append()

        size = media_file.stat().st_size
        assert sent == math.ceil(size / small_chunks)
        assert [fields["segment_index"] for fields, _ in server.appends] == [
            str(i) for i in range(sent)
        ]
        assert all(fields["media_id"] == MEDIA_ID for fields, _ in server.appends)
        assert b"".join(chunk for _, chunk in server.appends) == media_file.read_bytes()
        assert uploader.state is MediaUploadState.APPENDED

    def test_append_stops_at_first_failure(
        self, api, media_file, mock_x_api, media_init_response, small_chunks
    ):
        server = mount(mock_x_api, MediaServer(media_init_response, append_fail_at=2))
        uploader = MediaUploader(api, media_file)
        uploader.init("video/mp4", "amplify_video")

        with pytest.raises(ApiError):
            uploader.append()

        assert len(server.appends) == 2
        assert uploader.state is MediaUploadState.APPENDING

    def test_finalize_without_processing(self, api, media_file, mock_x_api, media_init_response):
        mount(mock_x_api, MediaServer(media_init_response))
        uploader = MediaUploader(api, media_file)
        uploader.init("image/png", "tweet_image")

        uploader.finalize()

        assert uploader.state is MediaUploadState.FINALIZED

    def test_finalize_with_processing(self, api, media_file, mock_x_api, media_init_response):
        mount(
            mock_x_api,
            MediaServer(media_init_response, finalize_payload=media_status_response("pending")),
        )
        uploader = MediaUploader(api, media_file)
        uploader.init("video/mp4", "amplify_video")

        uploader.finalize()

        assert uploader.state is MediaUploadState.PROCESSING

    @pytest.mark.parametrize(
        "step", ["append", "finalize", "check_status", "wait_for_processing"]
    )
    def test_steps_require_media_id(self, api, media_file, step):
        uploader = MediaUploader(api, media_file)

        with pytest.raises(MediaIdNotSetError, match="media ID not set"):
            getattr(uploader, step)()

    def test_directory_is_rejected(self, api, tmp_path):
        with pytest.raises(StorageError, match="not a regular file"):
            MediaUploader(api, tmp_path)

    def test_missing_file_is_rejected(self, api, tmp_path):
        with pytest.raises(StorageError):
            MediaUploader(api, tmp_path / "missing.mp4")

    def test_status_only_uploader(self, api):
        uploader = MediaUploader.for_media_id(api, MEDIA_ID, headers=["X-Trace: 1"])

        assert uploader.media_id == MEDIA_ID
        assert uploader.file_path is None
        assert uploader.state is MediaUploadState.FINALIZED
        with pytest.raises(ProtocolError):
            uploader.init("video/mp4", "amplify_video")

    def test_init_without_file_is_protocol_error(self, api):
        with pytest.raises(ProtocolError, match="no file"):
            MediaUploader(api).init("video/mp4", "amplify_video")


@pytest.mark.unit
class TestWaitForProcessing:
    """STATUS polling."""

    def test_polls_until_succeeded(self, api, mock_x_api, sleeps):
        statuses = [
            media_status_response("in_progress", check_after_secs=5, progress=10),
            media_status_response("in_progress", check_after_secs=0, progress=60),
            media_status_response("succeeded", progress=100),
        ]
        server = mount(mock_x_api, MediaServer({}, statuses=statuses))
        uploader = MediaUploader.for_media_id(api, MEDIA_ID)

        result = uploader.wait_for_processing()

        assert server.commands == ["STATUS", "STATUS", "STATUS"]
        assert result["data"]["processing_info"]["state"] == "succeeded"
        assert sleeps == [5, 1]
        assert uploader.state is MediaUploadState.SUCCEEDED

    def test_failed_is_terminal(self, api, mock_x_api, sleeps):
        statuses = [
            media_status_response("failed"),
            media_status_response("succeeded"),
        ]
        server = mount(mock_x_api, MediaServer({}, statuses=statuses))
        uploader = MediaUploader.for_media_id(api, MEDIA_ID)

        with pytest.raises(ProtocolError, match="Media processing failed"):
            uploader.wait_for_processing()

        assert server.commands == ["STATUS"]
        assert sleeps == []
        assert uploader.state is MediaUploadState.FAILED

    def test_payload_without_processing_info_is_returned(self, api, mock_x_api, sleeps):
        server = mount(mock_x_api, MediaServer({}, statuses=[{"data": {"id": MEDIA_ID}}]))
        uploader = MediaUploader.for_media_id(api, MEDIA_ID)

        result = uploader.wait_for_processing()

        assert result == {"data": {"id": MEDIA_ID}}
        assert server.commands == ["STATUS"]
        assert sleeps == []

    def test_unknown_state_is_protocol_error(self, api, mock_x_api, sleeps):
        mount(mock_x_api, MediaServer({}, statuses=[media_status_response("archived")]))
        uploader = MediaUploader.for_media_id(api, MEDIA_ID)

        with pytest.raises(ProtocolError, match="archived"):
            uploader.wait_for_processing()

        assert sleeps == []


@pytest.mark.unit
class TestUpload:
    """The full INIT / APPEND / FINALIZE / STATUS sequence."""

    def test_video_upload_waits_for_processing(
        self, api, media_file, mock_x_api, media_init_response, small_chunks, sleeps
    ):
        server = mount(
            mock_x_api,
            MediaServer(
                media_init_response,
                finalize_payload=media_status_response("pending", check_after_secs=1),
                statuses=[media_status_response("succeeded")],
            ),
        )
        uploader = MediaUploader(api, media_file)

        result = uploader.upload("video/mp4", "amplify_video")

        chunks = math.ceil(media_file.stat().st_size / small_chunks)
        assert server.commands == ["INIT"] + ["APPEND"] * chunks + ["FINALIZE", "STATUS"]
        assert result["data"]["processing_info"]["state"] == "succeeded"

    def test_image_upload_does_not_wait(
        self, api, media_file, mock_x_api, media_init_response, sleeps
    ):
        server = mount(mock_x_api, MediaServer(media_init_response))

        MediaUploader(api, media_file).upload("image/png", "tweet_image")

        assert "STATUS" not in server.commands

    def test_no_wait_skips_processing(
        self, api, media_file, mock_x_api, media_init_response, sleeps
    ):
        server = mount(
            mock_x_api,
            MediaServer(media_init_response, finalize_payload=media_status_response("pending")),
        )
        uploader = MediaUploader(api, media_file)

        uploader.upload("video/mp4", "amplify_video", wait=False)

        assert "STATUS" not in server.commands
        assert uploader.state is MediaUploadState.PROCESSING


@pytest.mark.unit
class TestRawAppendHelpers:
    """Support for `xurl request` APPEND calls with --file."""

    def test_extract_from_url_then_data(self):
        url = "/2/media/upload?command=APPEND&media_id=123&segment_index=4"

        assert extract_media_id(url) == "123"
        assert extract_segment_index(url) == "4"
        assert extract_media_id("/2/media/upload?command=APPEND", "media_id=456") == "456"
        assert extract_segment_index("/2/media/upload?command=APPEND") is None

    def test_is_media_append_request(self):
        url = "/2/media/upload?command=APPEND&media_id=1"

        assert is_media_append_request(url, "clip.mp4")
        assert not is_media_append_request(url, None)
        assert not is_media_append_request("/2/media/upload?command=INIT", "clip.mp4")

    def test_send_media_append(self, api, media_file, mock_x_api):
        server = mount(mock_x_api, MediaServer({}))

        send_media_append(api, "/2/media/upload?command=APPEND&media_id=123", media_file)

        fields, content = server.appends[0]
        assert fields == {"command": "APPEND", "media_id": "123", "segment_index": "0"}
        assert content == media_file.read_bytes()

    def test_send_media_append_requires_media_id(self, api, media_file):
        with pytest.raises(ProtocolError, match="media_id is required"):
            send_media_append(api, "/2/media/upload?command=APPEND", media_file)
