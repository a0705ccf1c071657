import io
import re
import uuid

import pytest

from app.core.enums import FileKind
from app.core.exceptions import UpstreamFailure
from app.core.storage import FileStore, LocalFileStore, build_object_path


def test_object_path_layout() -> None:
    student_id = uuid.uuid4()
    assignment_id = uuid.uuid4()
    path = build_object_path(FileKind.SUBMISSIONS, student_id, "Answer.PDF", assignment_id)
    assert re.fullmatch(rf"submissions/{student_id}/{assignment_id}/\d+\.pdf", path)


def test_object_path_without_extension() -> None:
    path = build_object_path(FileKind.AVATARS, "p1", None)
    assert re.fullmatch(r"avatars/p1/\d+\.bin", path)


@pytest.mark.asyncio
async def test_local_store_writes_file(tmp_path) -> None:
    store = LocalFileStore(str(tmp_path), "/files/")
    url = await store.upload("materials/t1/1.txt", io.BytesIO(b"hello"), "text/plain")
    assert url == "/files/materials/t1/1.txt"
    assert (tmp_path / "materials" / "t1" / "1.txt").read_bytes() == b"hello"


@pytest.mark.asyncio
async def test_local_store_failure_is_upstream(tmp_path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    store = LocalFileStore(str(blocker), "/files")
    with pytest.raises(UpstreamFailure):
        await store.upload("materials/t1/1.txt", io.BytesIO(b"hello"))


def test_file_store_is_abstract() -> None:
    with pytest.raises(TypeError):
        FileStore()
