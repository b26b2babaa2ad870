import pytest

from bulk_import import service
from bulk_import.schemas import ImportRow

from tests.helpers import HEADER, xlsx_bytes, zip_bytes


def _row(username: str, **overrides) -> ImportRow:
    values = {"first_name": "Ann", "last_name": "Lee", "username": username, "password": "pw"}
    values.update(overrides)
    return ImportRow(**values)


async def test_missing_required_fields_fail_only_that_row(pool, fake_repository) -> None:
    summary = await service.import_rows(pool, [_row("ann", password=None), _row("bo")])

    assert summary.as_dict() == {
        "imported": 1,
        "failed": 1,
        "errorDetails": ["Row 2: Missing required fields"],
    }
    assert [u["username"] for u in fake_repository.users] == ["bo"]


async def test_failed_student_insert_leaves_no_orphan_user(pool, fake_repository) -> None:
    fake_repository.fail_student_insert_for.add("ann")

    summary = await service.import_rows(pool, [_row("ann"), _row("bo")])

    assert summary.imported == 1
    assert summary.error_details[0].startswith("Row 2: ")
    assert fake_repository.user("ann") is None
    assert fake_repository.user("bo") is not None
    assert len(fake_repository.students) == 1


async def test_duplicate_username_in_one_file_first_wins(pool, fake_repository) -> None:
    summary = await service.import_rows(pool, [_row("ann"), _row("ann", first_name="Other")])

    assert summary.imported == 1
    assert summary.error_details == ["Row 3: Username 'ann' already exists"]
    assert fake_repository.students[0]["first_name"] == "Ann"


async def test_existing_username_is_rejected(pool, fake_repository) -> None:
    fake_repository.add_user("admin", role="admin")

    summary = await service.import_rows(pool, [_row("admin")])

    assert summary.error_details == ["Row 2: Username 'admin' already exists"]


async def test_unknown_class_name_fails_the_row(pool, fake_repository) -> None:
    summary = await service.import_rows(pool, [_row("ann", class_ref="Grade 9")])

    assert summary.error_details == ["Row 2: Class 'Grade 9' not found"]
    assert fake_repository.users == []


async def test_class_name_lookup_is_stable_and_picks_lowest_id(pool, fake_repository) -> None:
    first = fake_repository.add_class("Grade 5")
    fake_repository.add_class("grade 5")

    summary = await service.import_rows(
        pool,
        [_row("ann", class_ref="Grade 5"), _row("bo", class_ref="GRADE 5")],
    )

    assert summary.imported == 2
    assert {s["class_id"] for s in fake_repository.students} == {first}
    assert fake_repository.class_lookups == ["Grade 5", "GRADE 5"]


async def test_numeric_class_ref_is_used_as_id(pool, fake_repository) -> None:
    await service.import_rows(pool, [_row("ann", class_ref="42")])

    assert fake_repository.students[0]["class_id"] == 42
    assert fake_repository.class_lookups == []


async def test_roll_number_must_be_unique_within_class(pool, fake_repository) -> None:
    fake_repository.add_class("Grade 5")

    summary = await service.import_rows(
        pool,
        [
            _row("ann", class_ref="1", roll_number="7"),
            _row("bo", class_ref="1", roll_number="7"),
            _row("cy", roll_number="7"),
        ],
    )

    assert summary.imported == 2
    assert summary.error_details == ["Row 3: Roll number '7' already exists in class"]


async def test_spreadsheet_import_back_fills_student_link(pool, fake_repository, tmp_path) -> None:
    source = tmp_path / "students.xlsx"
    source.write_bytes(
        xlsx_bytes(
            [
                HEADER,
                ["Ann", "Lee", "ann", "pw", None, "1", 40179],
                ["Bo", "Chan", "bo", None, None, "2", None],
            ]
        )
    )

    summary = await service.import_spreadsheet(pool, source)

    assert summary.as_dict() == {
        "imported": 1,
        "failed": 1,
        "errorDetails": ["Row 3: Missing required fields"],
    }
    ann = fake_repository.user("ann")
    assert ann["student_id"] == fake_repository.students[0]["id"]
    assert fake_repository.students[0]["date_of_birth"] == "2010-01-01"


async def test_empty_spreadsheet_is_a_source_error(pool, fake_repository, tmp_path) -> None:
    source = tmp_path / "students.xlsx"
    source.write_bytes(xlsx_bytes([HEADER]))

    with pytest.raises(service.ImportSourceError, match="Excel file is empty"):
        await service.import_spreadsheet(pool, source)


async def test_archive_import_links_photos_but_not_users(pool, fake_repository, tmp_path, upload_env) -> None:
    sheet = xlsx_bytes(
        [
            HEADER + ["Photo"],
            ["Ann", "Lee", "ann", "pw", None, "1", None, "ann.jpg"],
            ["Bo", "Chan", "bo", "pw", None, "2", None, "missing.jpg"],
        ]
    )
    source = tmp_path / "bundle.zip"
    source.write_bytes(
        zip_bytes(
            {
                "__MACOSX/._students.xlsx": b"fork",
                "students.xlsx": sheet,
                "photos/ANN.JPG": b"jpeg",
            }
        )
    )

    summary = await service.import_archive(pool, source)

    assert summary.as_dict(with_photos=True) == {
        "imported": 2,
        "failed": 0,
        "errorDetails": [],
        "photosUploaded": 1,
    }
    ann, bo = fake_repository.students
    assert ann["profile_photo"].startswith("uploads/")
    assert ann["profile_photo"].endswith("-ann.JPG")
    assert bo["profile_photo"] is None
    assert all(u["student_id"] is None for u in fake_repository.users)
    assert len(list(upload_env.glob("*-ann.JPG"))) == 1


async def test_archive_roll_number_reason_has_no_class_suffix(pool, fake_repository, tmp_path) -> None:
    sheet = xlsx_bytes(
        [
            HEADER,
            ["Ann", "Lee", "ann", "pw", "3", "7", None],
            ["Bo", "Chan", "bo", "pw", "3", "7", None],
        ]
    )
    source = tmp_path / "bundle.zip"
    source.write_bytes(zip_bytes({"students.xlsx": sheet}))

    summary = await service.import_archive(pool, source)

    assert summary.error_details == ["Row 3: Roll number '7' already exists"]


async def test_photo_of_a_failed_row_is_removed(pool, fake_repository, tmp_path, upload_env) -> None:
    fake_repository.fail_student_insert_for.add("ann")
    sheet = xlsx_bytes([HEADER + ["Photo"], ["Ann", "Lee", "ann", "pw", None, "1", None, "ann.jpg"]])
    source = tmp_path / "bundle.zip"
    source.write_bytes(zip_bytes({"students.xlsx": sheet, "ann.jpg": b"jpeg"}))

    summary = await service.import_archive(pool, source)

    assert summary.failed == 1
    assert list(upload_env.glob("*-ann.jpg")) == []


async def test_archive_without_spreadsheet_is_a_source_error(pool, fake_repository, tmp_path) -> None:
    source = tmp_path / "bundle.zip"
    source.write_bytes(zip_bytes({"photos/ann.jpg": b"jpeg", "__MACOSX/students.xlsx": b"fork"}))

    with pytest.raises(service.ImportSourceError, match="No Excel file found in ZIP"):
        await service.import_archive(pool, source)


async def test_corrupt_archive_is_a_source_error(pool, fake_repository, tmp_path) -> None:
    source = tmp_path / "bundle.zip"
    source.write_bytes(b"not a zip")

    with pytest.raises(service.ImportSourceError):
        await service.import_archive(pool, source)


async def test_photo_write_failure_still_imports_the_row(pool, fake_repository, tmp_path, monkeypatch) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_bytes(b"")
    monkeypatch.setenv("UPLOAD_DIR", str(blocker))
    sheet = xlsx_bytes([HEADER + ["Photo"], ["Ann", "Lee", "ann", "pw", None, "1", None, "ann.jpg"]])
    source = tmp_path / "bundle.zip"
    source.write_bytes(zip_bytes({"students.xlsx": sheet, "ann.jpg": b"jpeg"}))

    summary = await service.import_archive(pool, source)

    assert summary.as_dict(with_photos=True) == {
        "imported": 1,
        "failed": 0,
        "errorDetails": [],
        "photosUploaded": 0,
    }
    assert fake_repository.students[0]["profile_photo"] is None
