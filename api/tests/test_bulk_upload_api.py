from tests.helpers import HEADER, XLSX_TYPE, xlsx_bytes, zip_bytes


def _sheet() -> bytes:
    return xlsx_bytes(
        [
            HEADER + ["Photo"],
            ["Ann", "Lee", "ann", "pw", None, "1", "2010-05-14", "ann.jpg"],
            ["Bo", "Chan", "ann", "pw", None, "2", None, None],
        ]
    )


def _staged(upload_env) -> list:
    staging = upload_env / "tmp"
    return list(staging.iterdir()) if staging.exists() else []


def test_spreadsheet_upload_reports_counts(client, fake_repository, response_cache, upload_env) -> None:
    response_cache.set("classes_all", {"classes": []})

    res = client.post(
        "/api/admin/students/bulk-upload",
        files={"excelFile": ("students.xlsx", _sheet(), XLSX_TYPE)},
    )

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Imported 1/2 students",
        "data": {
            "imported": 1,
            "failed": 1,
            "errorDetails": ["Row 3: Username 'ann' already exists"],
        },
    }
    assert fake_repository.user("ann")["student_id"] == 1
    assert _staged(upload_env) == []
    assert response_cache.get("classes_all") is None


def test_zip_upload_reports_photos(client, fake_repository, upload_env) -> None:
    bundle = zip_bytes({"students.xlsx": _sheet(), "photos/ann.jpg": b"jpeg"})

    res = client.post(
        "/api/admin/students/bulk-upload-zip",
        files={"zipFile": ("bundle.zip", bundle, "application/zip")},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Imported 1/2 students with photos"
    assert body["data"]["photosUploaded"] == 1
    assert fake_repository.user("ann")["student_id"] is None
    assert _staged(upload_env) == []


def test_missing_file_is_400(client) -> None:
    res = client.post("/api/admin/students/bulk-upload", data={})
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "Excel file is required"}

    res = client.post("/api/admin/students/bulk-upload-zip", data={})
    assert res.status_code == 400
    assert res.json()["message"] == "ZIP file is required"


def test_wrong_file_type_is_400(client) -> None:
    res = client.post(
        "/api/admin/students/bulk-upload",
        files={"excelFile": ("bundle.zip", b"PK", "application/zip")},
    )
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_empty_sheet_is_400_and_staged_file_removed(client, fake_repository, upload_env) -> None:
    res = client.post(
        "/api/admin/students/bulk-upload",
        files={"excelFile": ("students.xlsx", xlsx_bytes([HEADER]), XLSX_TYPE)},
    )

    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "Excel file is empty"}
    assert _staged(upload_env) == []


def test_zip_without_spreadsheet_is_400(client, fake_repository) -> None:
    res = client.post(
        "/api/admin/students/bulk-upload-zip",
        files={"zipFile": ("bundle.zip", zip_bytes({"ann.jpg": b"jpeg"}), "application/zip")},
    )

    assert res.status_code == 400
    assert res.json()["message"] == "No Excel file found in ZIP"


def test_oversized_upload_is_413(client, monkeypatch, upload_env) -> None:
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "10")

    res = client.post(
        "/api/admin/students/bulk-upload",
        files={"excelFile": ("students.xlsx", _sheet(), XLSX_TYPE)},
    )

    assert res.status_code == 413
    assert _staged(upload_env) == []


def test_bulk_endpoints_name_the_accepted_extensions(client) -> None:
    res = client.post(
        "/api/admin/students/bulk-upload",
        files={"excelFile": ("class-photo.png", b"\x89PNG", "image/png")},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Unsupported file type '.png'. Allowed: ['.csv', '.xls', '.xlsx']"

    res = client.post(
        "/api/admin/students/bulk-upload-zip",
        files={"zipFile": ("students.xlsx", b"PK", XLSX_TYPE)},
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Unsupported file type '.xlsx'. Allowed: ['.zip']"
