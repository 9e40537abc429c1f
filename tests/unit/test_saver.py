"""Unit tests for MinutesSaver and TokenProvider."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from minutetaker.errors import SaveFailure
from minutetaker.models.audio import AudioArtifact
from minutetaker.models.generation import MeetingMode, SupplementaryFile
from minutetaker.storage.auth import TokenProvider
from minutetaker.storage.drive import DOCUMENT_MIME_TYPE, DriveFile
from minutetaker.storage.google_api import GoogleAPIError
from minutetaker.storage.saver import MinutesSaver, audio_extension

MINUTES = "# 予算会議 議事録\n- 決定事項"
# 2025-03-31 20:00 UTC is already April 1st in Japan
SAVE_TIME = datetime(2025, 3, 31, 20, 0, tzinfo=timezone.utc)


class FakeStore:
    def __init__(self, token):
        self.token = token
        self.folders = []
        self.uploads = []
        self.updates = []
        self.fail_on = None

    async def find_or_create_folder(self, name, parent_id="root"):
        self.folders.append((name, parent_id))
        return DriveFile(id="day-folder", name=name)

    async def upload(self, name, data, mime_type, folder_id="root", convert_to=None):
        if self.fail_on and self.fail_on in name:
            raise GoogleAPIError("Drive", 500, "backend error")
        self.uploads.append((name, data, mime_type, folder_id, convert_to))
        return DriveFile(id=f"id{len(self.uploads)}", web_view_link=f"https://drive/{len(self.uploads)}", name=name)

    async def update(self, file_id, data, mime_type):
        self.updates.append((file_id, data, mime_type))
        return DriveFile(id=file_id, web_view_link=f"https://drive/{file_id}")


class StoreFactory:
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.stores = []

    def __call__(self, token):
        store = FakeStore(token)
        store.fail_on = self.fail_on
        self.stores.append(store)
        return store


def token_provider(token="access-token"):
    provider = Mock()
    provider.current_token.return_value = token
    return provider


def make_saver(factory, token="access-token"):
    return MinutesSaver(token_provider(token), minutes_folder_id="minutes-root",
                        audio_folder_id="audio-root", store_factory=factory)


@pytest.fixture
def artifact():
    return AudioArtifact.from_chunks([b'\x00\x00' * 160], sample_rate=16000, duration_seconds=0.01)


@pytest.mark.unit
class TestMinutesSaver:

    def test_saves_doc_into_day_folder(self):
        factory = StoreFactory()

        result = asyncio.run(make_saver(factory).save(MINUTES, MeetingMode.BUSINESS, "山田", now=SAVE_TIME))

        store = factory.stores[0]
        assert store.token == "access-token"
        assert store.folders == [("2025-04-01", "minutes-root")]
        name, data, mime_type, folder_id, convert_to = store.uploads[0]
        assert name == "20250401_商談_予算会議(山田)_議事録"
        assert data.decode("utf-8") == MINUTES
        assert mime_type == "text/plain"
        assert folder_id == "day-folder"
        assert convert_to == DOCUMENT_MIME_TYPE
        assert result.doc_link == "https://drive/1"
        assert result.audio_link is None

    def test_saves_recording_and_extra_audio(self, artifact):
        factory = StoreFactory()
        extras = [SupplementaryFile("a.webm", "audio/webm", b"1"), SupplementaryFile("b.mp4", "audio/mp4", b"2")]

        result = asyncio.run(make_saver(factory).save(MINUTES, MeetingMode.INTERNAL, "", artifact,
                                                      extras, now=SAVE_TIME))

        names = [upload[0] for upload in factory.stores[0].uploads]
        assert names == [
            "20250401_社内_予算会議(不明)_議事録",
            "20250401_社内_予算会議(不明)_音声.wav",
            "20250401_社内_予算会議(不明)_音声_1.webm",
            "20250401_社内_予算会議(不明)_音声_2.m4a",
        ]
        assert all(upload[3] == "audio-root" for upload in factory.stores[0].uploads[1:])
        assert result.audio_link == "https://drive/2"

    def test_single_extra_audio_has_no_index(self):
        factory = StoreFactory()
        extras = [SupplementaryFile("a.mp3", "audio/mpeg", b"1")]

        asyncio.run(make_saver(factory).save(MINUTES, MeetingMode.OTHER, "x", extra_audio=extras, now=SAVE_TIME))

        assert factory.stores[0].uploads[-1][0] == "20250401_その他_予算会議(x)_音声.mp3"

    def test_missing_token(self):
        with pytest.raises(SaveFailure) as exc_info:
            asyncio.run(make_saver(StoreFactory(), token=None).save(MINUTES, MeetingMode.INTERNAL))
        assert exc_info.value.minutes == MINUTES

    def test_empty_minutes(self):
        factory = StoreFactory()
        with pytest.raises(SaveFailure):
            asyncio.run(make_saver(factory).save("   ", MeetingMode.INTERNAL))
        assert factory.stores == []

    def test_drive_error_keeps_minutes(self, artifact):
        factory = StoreFactory(fail_on="音声")

        with pytest.raises(SaveFailure) as exc_info:
            asyncio.run(make_saver(factory).save(MINUTES, MeetingMode.INTERNAL, artifact=artifact, now=SAVE_TIME))

        assert exc_info.value.minutes == MINUTES
        assert exc_info.value.code == "SAVE_FAILURE"

    def test_retry_after_audio_failure_keeps_one_doc(self, artifact):
        factory = StoreFactory(fail_on="音声")
        saver = make_saver(factory)
        with pytest.raises(SaveFailure):
            asyncio.run(saver.save(MINUTES, MeetingMode.INTERNAL, artifact=artifact, now=SAVE_TIME))

        factory.fail_on = None
        result = asyncio.run(saver.save(MINUTES, MeetingMode.INTERNAL, artifact=artifact, now=SAVE_TIME))

        retry = factory.stores[1]
        assert [upload[0] for upload in retry.uploads] == ["20250401_社内_予算会議(不明)_音声.wav"]
        assert retry.updates == []
        assert result.doc_link == "https://drive/1"
        assert result.audio_link == "https://drive/1"

    def test_saving_again_skips_everything_unchanged(self, artifact):
        factory = StoreFactory()
        saver = make_saver(factory)

        asyncio.run(saver.save(MINUTES, MeetingMode.INTERNAL, artifact=artifact, now=SAVE_TIME))
        asyncio.run(saver.save(MINUTES, MeetingMode.INTERNAL, artifact=artifact, now=SAVE_TIME))

        assert len(factory.stores[0].uploads) == 2
        assert factory.stores[1].uploads == []
        assert factory.stores[1].updates == []

    def test_edited_minutes_update_existing_doc(self):
        factory = StoreFactory()
        saver = make_saver(factory)
        edited = MINUTES + "\n- 追記"

        asyncio.run(saver.save(MINUTES, MeetingMode.INTERNAL, now=SAVE_TIME))
        result = asyncio.run(saver.save(edited, MeetingMode.INTERNAL, now=SAVE_TIME))

        assert factory.stores[1].uploads == []
        assert factory.stores[1].updates == [("id1", edited.encode("utf-8"), "text/plain")]
        assert result.doc_link == "https://drive/id1"

    @pytest.mark.parametrize("mime_type,expected", [
        ("audio/webm;codecs=opus", ".webm"),
        ("audio/mp4", ".m4a"),
        ("audio/wav", ".wav"),
        ("audio/ogg", ""),
    ])
    def test_audio_extension(self, mime_type, expected):
        assert audio_extension(mime_type) == expected


@pytest.mark.unit
class TestTokenProvider:

    def test_no_path(self):
        assert TokenProvider(None).current_token() is None

    def test_missing_file(self, temp_data_dir):
        assert TokenProvider(f"{temp_data_dir}/absent.json").current_token() is None

    def test_valid_credentials(self):
        credentials = Mock(valid=True, token="tok")
        with patch("minutetaker.storage.auth.Credentials.from_authorized_user_file",
                   return_value=credentials) as load:
            provider = TokenProvider("token.json")
            assert provider.current_token() == "tok"
            assert provider.current_token() == "tok"

        load.assert_called_once()
        credentials.refresh.assert_not_called()

    def test_expired_credentials_refresh(self):
        credentials = Mock(valid=False, token="fresh")
        with patch("minutetaker.storage.auth.Credentials.from_authorized_user_file",
                   return_value=credentials):
            assert TokenProvider("token.json").current_token() == "fresh"

        credentials.refresh.assert_called_once()

    def test_refresh_failure(self):
        from google.auth.exceptions import RefreshError

        credentials = Mock(valid=False)
        credentials.refresh.side_effect = RefreshError("invalid_grant")
        with patch("minutetaker.storage.auth.Credentials.from_authorized_user_file",
                   return_value=credentials):
            provider = TokenProvider("token.json")
            assert provider.current_token() is None

        assert provider.credentials is None
