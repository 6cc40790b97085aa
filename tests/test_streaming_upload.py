import logging

import pytest

from s3stream.cloud.base import CompletedPart
from s3stream.errors import GatewayError, InvalidState, NoDataUploaded
from s3stream.streaming_upload import MIN_PART_SIZE, StreamingUpload, UploadStatus

MB = 1 << 20


def pattern(size, seed=0):
    """Bytes that repeat every 251 positions, so misplaced parts show up."""
    block = bytes((seed + i) % 251 for i in range(251))
    return (block * (size // 251 + 1))[:size]


@pytest.fixture
def upload(gateway):
    return StreamingUpload(gateway, "media", "videos/clip.mp4")


@pytest.fixture
def started(upload):
    upload.init()
    return upload


class TestStreamingUpload:
    def test_min_part_size_is_five_megabytes(self):
        assert MIN_PART_SIZE == 5 * 1024 * 1024
        assert StreamingUpload.MIN_PART_SIZE == MIN_PART_SIZE

    def test_new_upload_is_not_started(self, upload, gateway):
        assert upload.status == UploadStatus.NOT_STARTED
        assert upload.is_active
        assert upload.upload_id is None
        assert upload.uploaded_bytes == 0
        assert upload.s3_key == "videos/clip.mp4"
        assert upload.expected_size == -1
        assert gateway.calls == []

    def test_init_creates_the_multipart_upload(self, upload, gateway):
        upload.init()

        assert upload.status == UploadStatus.IN_PROGRESS
        assert upload.is_active
        assert upload.upload_id == "upload-1"
        assert gateway.calls_to("create_multipart_upload") == [
            {
                "bucket": "media",
                "key": "videos/clip.mp4",
                "content_type": "video/mp4",
            }
        ]

    def test_init_twice_is_an_error(self, started, gateway):
        with pytest.raises(InvalidState):
            started.init()
        assert gateway.call_names() == ["create_multipart_upload"]
        assert started.upload_id == "upload-1"

    def test_failed_init(self, upload, gateway):
        gateway.failing_methods.add("create_multipart_upload")

        with pytest.raises(GatewayError):
            upload.init()

        assert upload.status == UploadStatus.FAILED
        assert not upload.is_active
        assert upload.upload_id is None

        # There is nothing on the server to abort.
        upload.abort()
        assert upload.status == UploadStatus.ABORTED
        assert gateway.call_names() == ["create_multipart_upload"]

    def test_write_before_init_is_an_error(self, upload, gateway):
        with pytest.raises(InvalidState):
            upload.write(0, b"data")
        with pytest.raises(InvalidState):
            upload.complete()

        assert upload.status == UploadStatus.NOT_STARTED
        assert gateway.calls == []

    def test_small_writes_are_buffered(self, started, gateway):
        started.write(0, b"a" * 1000)
        started.write(1000, b"b" * 24)

        assert started.uploaded_bytes == 1024
        assert started.buffered_bytes == 1024
        assert gateway.calls_to("upload_part") == []

    def test_end_to_end(self, started, gateway):
        first = pattern(6 * MB, seed=1)
        second = pattern(int(4.5 * MB), seed=2)

        started.write(0, first)
        assert gateway.part_sizes() == [5 * MB]
        assert started.buffered_bytes == 1 * MB

        started.write(len(first), second)
        assert gateway.part_sizes() == [5 * MB, 5 * MB]
        assert started.buffered_bytes == int(0.5 * MB)

        assert started.complete() == "videos/clip.mp4"
        assert gateway.part_sizes() == [5 * MB, 5 * MB, int(0.5 * MB)]
        assert started.status == UploadStatus.COMPLETED
        assert not started.is_active
        assert started.uploaded_bytes == int(10.5 * MB)

        [complete_call] = gateway.calls_to("complete_multipart_upload")
        assert complete_call["upload_id"] == "upload-1"
        assert complete_call["parts"] == [
            CompletedPart(1, '"etag-1"'),
            CompletedPart(2, '"etag-2"'),
            CompletedPart(3, '"etag-3"'),
        ]
        assert gateway.objects["videos/clip.mp4"] == first + second

    def test_one_large_write_is_split_into_full_parts(self, started, gateway):
        started.write(0, pattern(12 * MB))

        assert gateway.part_sizes() == [5 * MB, 5 * MB]
        assert started.buffered_bytes == 2 * MB
        assert [part.part_number for part in started.completed_parts] == [1, 2]

        started.complete()
        assert gateway.part_sizes() == [5 * MB, 5 * MB, 2 * MB]
        assert [part.part_number for part in started.completed_parts] == [1, 2, 3]

    def test_exact_multiple_has_no_short_part(self, started, gateway):
        started.write(0, pattern(10 * MB))
        assert started.buffered_bytes == 0

        started.complete()
        assert gateway.part_sizes() == [5 * MB, 5 * MB]

    def test_many_odd_sized_writes(self, started, gateway):
        data = pattern(777_777 * 20, seed=3)
        offset = 0
        for start in range(0, len(data), 777_777):
            chunk = data[start:start + 777_777]
            started.write(offset, chunk)
            offset += len(chunk)

            # Never more than one part's worth waits in memory between writes.
            assert started.buffered_bytes < MIN_PART_SIZE

        assert started.uploaded_bytes == len(data)

        started.complete()

        sizes = gateway.part_sizes()
        assert sizes[:-1] == [MIN_PART_SIZE] * (len(sizes) - 1)
        assert 0 < sizes[-1] <= MIN_PART_SIZE
        assert sum(sizes) == len(data)
        part_numbers = [call["part_number"] for call in gateway.calls_to("upload_part")]
        assert part_numbers == list(range(1, len(sizes) + 1))
        assert gateway.objects["videos/clip.mp4"] == data

    def test_offset_does_not_reorder_data(self, started, gateway):
        started.write(100, b"abc")
        started.write(0, b"def")
        started.complete()

        assert gateway.objects["videos/clip.mp4"] == b"abcdef"

    def test_complete_without_data_aborts(self, started, gateway):
        with pytest.raises(NoDataUploaded):
            started.complete()

        assert started.status == UploadStatus.ABORTED
        assert gateway.call_names() == [
            "create_multipart_upload",
            "abort_multipart_upload",
        ]
        assert gateway.uploads == {}

    def test_complete_with_empty_writes_aborts(self, started, gateway):
        started.write(0, b"")

        with pytest.raises(NoDataUploaded):
            started.complete()

        assert started.status == UploadStatus.ABORTED
        assert gateway.calls_to("upload_part") == []

    def test_failed_part_leaves_upload_on_server(self, started, gateway):
        gateway.failing_parts.add(2)

        started.write(0, pattern(3 * MB))
        with pytest.raises(GatewayError, match="part 2"):
            started.write(3 * MB, pattern(8 * MB))

        assert started.status == UploadStatus.FAILED
        assert not started.is_active
        # The failed write is not counted.
        assert started.uploaded_bytes == 3 * MB
        assert [part.part_number for part in started.completed_parts] == [1]
        # No third part was attempted, and nothing was aborted.
        assert [call["part_number"] for call in gateway.calls_to("upload_part")] == [1, 2]
        assert gateway.calls_to("abort_multipart_upload") == []
        assert "upload-1" in gateway.uploads

    def test_failed_upload_rejects_further_use(self, started, gateway):
        gateway.failing_parts.add(1)
        with pytest.raises(GatewayError):
            started.write(0, pattern(5 * MB))
        calls_after_failure = len(gateway.calls)

        with pytest.raises(InvalidState):
            started.write(5 * MB, b"more")
        with pytest.raises(InvalidState):
            started.complete()
        with pytest.raises(InvalidState):
            started.init()
        assert len(gateway.calls) == calls_after_failure

    def test_failed_upload_is_not_aborted_on_close(self, started, gateway):
        gateway.failing_parts.add(1)
        with pytest.raises(GatewayError):
            started.write(0, pattern(5 * MB))

        started.close()
        assert started.status == UploadStatus.FAILED
        assert gateway.calls_to("abort_multipart_upload") == []

    def test_failed_upload_can_be_aborted_explicitly(self, started, gateway):
        gateway.failing_parts.add(1)
        with pytest.raises(GatewayError):
            started.write(0, pattern(5 * MB))

        started.abort()
        assert started.status == UploadStatus.ABORTED
        assert gateway.calls_to("abort_multipart_upload") == [
            {"bucket": "media", "key": "videos/clip.mp4", "upload_id": "upload-1"}
        ]

    def test_failed_final_part(self, started, gateway):
        gateway.failing_parts.add(1)
        started.write(0, b"tail")

        with pytest.raises(GatewayError):
            started.complete()

        assert started.status == UploadStatus.FAILED
        assert gateway.calls_to("complete_multipart_upload") == []
        assert gateway.calls_to("abort_multipart_upload") == []

    def test_failed_completion(self, started, gateway):
        gateway.failing_methods.add("complete_multipart_upload")
        started.write(0, b"data")

        with pytest.raises(GatewayError):
            started.complete()

        assert started.status == UploadStatus.FAILED

    def test_abort_in_progress(self, started, gateway):
        started.write(0, pattern(6 * MB))
        started.abort()

        assert started.status == UploadStatus.ABORTED
        assert not started.is_active
        assert started.upload_id is None
        assert started.completed_parts == ()
        assert started.buffered_bytes == 0
        assert len(gateway.calls_to("abort_multipart_upload")) == 1
        assert gateway.uploads == {}

    def test_abort_twice(self, started, gateway):
        started.abort()
        started.abort()

        assert started.status == UploadStatus.ABORTED
        assert len(gateway.calls_to("abort_multipart_upload")) == 1

    def test_abort_after_complete_does_nothing(self, started, gateway):
        started.write(0, b"data")
        started.complete()
        parts = started.completed_parts

        started.abort()
        started.abort()

        assert started.status == UploadStatus.COMPLETED
        assert started.completed_parts == parts
        assert gateway.calls_to("abort_multipart_upload") == []

    def test_operations_after_abort(self, started, gateway):
        started.abort()
        calls = len(gateway.calls)

        for operation in (
            started.init,
            started.complete,
            lambda: started.write(0, b"x"),
        ):
            with pytest.raises(InvalidState):
                operation()
        assert len(gateway.calls) == calls

    def test_abort_before_init(self, upload, gateway):
        upload.abort()

        assert upload.status == UploadStatus.ABORTED
        assert gateway.calls == []

    def test_failed_abort_is_logged_not_raised(self, started, gateway, caplog):
        gateway.failing_methods.add("abort_multipart_upload")

        with caplog.at_level(logging.WARNING, logger="s3stream.streaming_upload"):
            started.abort()

        assert started.status == UploadStatus.ABORTED
        assert "Failed to abort multipart upload for videos/clip.mp4" in caplog.text

    def test_failed_abort_does_not_change_no_data_error(self, started, gateway):
        gateway.failing_methods.add("abort_multipart_upload")

        with pytest.raises(NoDataUploaded):
            started.complete()
        assert started.status == UploadStatus.ABORTED

    def test_leaving_context_aborts_upload_in_progress(self, gateway):
        with StreamingUpload(gateway, "media", "a.bin") as upload:
            upload.init()
            upload.write(0, b"partial")

        assert upload.status == UploadStatus.ABORTED
        assert len(gateway.calls_to("abort_multipart_upload")) == 1

    def test_exception_inside_context_aborts(self, gateway):
        with pytest.raises(RuntimeError):
            with StreamingUpload(gateway, "media", "a.bin") as upload:
                upload.init()
                raise RuntimeError("producer died")

        assert upload.status == UploadStatus.ABORTED
        assert len(gateway.calls_to("abort_multipart_upload")) == 1

    def test_leaving_context_after_complete(self, gateway):
        with StreamingUpload(gateway, "media", "a.bin") as upload:
            upload.init()
            upload.write(0, b"whole")
            upload.complete()

        assert upload.status == UploadStatus.COMPLETED
        assert gateway.calls_to("abort_multipart_upload") == []

    def test_dropping_upload_in_progress_aborts_once(self, gateway):
        upload = StreamingUpload(gateway, "media", "a.bin")
        upload.init()
        upload.write(0, b"partial")

        del upload

        assert len(gateway.calls_to("abort_multipart_upload")) == 1

    def test_dropping_unstarted_upload_does_nothing(self, gateway):
        upload = StreamingUpload(gateway, "media", "a.bin")
        del upload

        assert gateway.calls == []

    def test_close_then_drop_aborts_once(self, gateway):
        upload = StreamingUpload(gateway, "media", "a.bin")
        upload.init()
        upload.close()
        del upload

        assert len(gateway.calls_to("abort_multipart_upload")) == 1

    def test_content_type_comes_from_the_key(self, gateway):
        upload = StreamingUpload(gateway, "media", "docs/report.pdf", 1234)
        upload.init()

        assert gateway.content_types["docs/report.pdf"] == "application/pdf"
        assert upload.expected_size == 1234
        upload.close()
