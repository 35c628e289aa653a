"""Behaviour specific to the JSONL log backend."""

import json
from dataclasses import replace

import pytest

from rolling_paper.core.errors import StorageError, ValidationError
from rolling_paper.repositories import LogMessageStore
from rolling_paper.repositories.log_store import LOG_FILENAME


def _log_lines(store: LogMessageStore) -> list[dict]:
    return [json.loads(line) for line in store.log_path.read_text(encoding="utf-8").splitlines()]


def test_log_is_append_only_in_insertion_order(log_store, make_record) -> None:
    first = make_record(timestamp=5_000)
    second = make_record(timestamp=1_000)
    log_store.append(first)
    log_store.append(second)

    assert [line["id"] for line in _log_lines(log_store)] == [first.id, second.id]


def test_log_uses_camel_case_fields(log_store, make_record) -> None:
    log_store.append(make_record(password="secret", is_private=True))

    (line,) = _log_lines(log_store)
    assert "passwordHash" in line
    assert line["isPrivate"] is True
    assert "password_hash" not in line


def test_reads_legacy_lines_without_optional_fields(message_dir) -> None:
    (message_dir / LOG_FILENAME).write_text(
        '{"id":"old","author":"A","group":"ESD","content":"hi","timestamp":1000}\n\n',
        encoding="utf-8",
    )
    store = LogMessageStore(message_dir)

    (record,) = store.list_all()
    assert record.likes == 0
    assert record.password_hash is None
    assert record.is_private is False


def test_append_writes_group_transcript(log_store, make_record, message_dir) -> None:
    log_store.append(make_record(group="FDM", author="A", content="one", timestamp=1))
    log_store.append(make_record(group="FDM", author="B", content="two", timestamp=2))

    assert (message_dir / "FDM.txt").read_text(encoding="utf-8") == "[A]: one\n[B]: two\n"


def test_edit_rewrites_transcript(log_store, make_record, message_dir) -> None:
    record = make_record(group="ESD", author="A", content="before")
    log_store.append(record)

    log_store.replace(record.id, lambda current: replace(current, content="after"))

    assert (message_dir / "ESD.txt").read_text(encoding="utf-8") == "[A]: after\n"


def test_deleting_last_message_removes_group_transcript(log_store, make_record, message_dir) -> None:
    record = make_record(group="PV")
    log_store.append(record)
    assert (message_dir / "PV.txt").exists()

    log_store.remove(record.id)

    assert not (message_dir / "PV.txt").exists()


def test_deleting_last_message_of_unlisted_group_removes_transcript(
    log_store, make_record, message_dir
) -> None:
    record = make_record(group="Legacy Team")
    log_store.append(record)
    assert (message_dir / "Legacy Team.txt").exists()

    log_store.remove(record.id)

    assert not (message_dir / "Legacy Team.txt").exists()
    assert not list(message_dir.glob("*.txt"))


def test_initialize_rebuilds_stale_transcripts(message_dir, make_record) -> None:
    store = LogMessageStore(message_dir)
    store.initialize()
    store.append(make_record(group="ET", author="A", content="real"))
    (message_dir / "ET.txt").write_text("[someone]: tampered\n", encoding="utf-8")

    LogMessageStore(message_dir).initialize()

    assert (message_dir / "ET.txt").read_text(encoding="utf-8") == "[A]: real\n"


def test_korean_group_names_are_valid_filenames(log_store, make_record, message_dir) -> None:
    log_store.append(make_record(group="공정", author="김", content="안녕하세요"))

    assert (message_dir / "공정.txt").read_text(encoding="utf-8") == "[김]: 안녕하세요\n"


def test_group_with_path_separator_is_rejected(log_store, make_record) -> None:
    with pytest.raises(ValidationError):
        log_store.append(make_record(group="../escape"))
    assert log_store.list_all() == []


def test_corrupt_log_surfaces_storage_error(log_store, make_record) -> None:
    log_store.append(make_record())
    with log_store.log_path.open("a", encoding="utf-8") as log_file:
        log_file.write("{not json\n")

    with pytest.raises(StorageError):
        log_store.list_all()


def test_failed_transcript_write_restores_log(log_store, make_record, mocker) -> None:
    record = make_record(content="original")
    log_store.append(record)
    before = log_store.log_path.read_bytes()

    mocker.patch.object(
        LogMessageStore,
        "_write_transcripts",
        side_effect=StorageError(),
    )
    with pytest.raises(StorageError):
        log_store.replace(record.id, lambda current: replace(current, content="changed"))

    assert log_store.log_path.read_bytes() == before
    assert log_store.get_by_id(record.id).content == "original"


def test_failed_transcript_write_rolls_back_append(log_store, make_record, mocker) -> None:
    seed = make_record()
    log_store.append(seed)
    before = log_store.log_path.read_bytes()

    mocker.patch.object(
        LogMessageStore,
        "_write_transcripts",
        side_effect=StorageError(),
    )
    failed = make_record()
    with pytest.raises(StorageError):
        log_store.append(failed)

    assert log_store.log_path.read_bytes() == before
    assert [record.id for record in log_store.list_all()] == [seed.id]

    mocker.stopall()
    log_store.append(failed)
    assert {record.id for record in log_store.list_all()} == {seed.id, failed.id}


def test_likes_do_not_touch_transcripts(log_store, make_record, mocker) -> None:
    record = make_record()
    log_store.append(record)
    write_transcripts = mocker.spy(log_store, "_write_transcripts")

    log_store.increment_likes(record.id)

    write_transcripts.assert_not_called()
