"""Tests for the CSV source adapter."""

import io

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from pubdash import csv_source
from pubdash.csv_source import (
    DataSourceError,
    fetch_csv_text,
    load_publication_rows,
    parse_csv_text,
    split_s3_uri,
)


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-west-2",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def _body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


def test_split_s3_uri():
    assert split_s3_uri("s3://sdp-dev-publications/data.csv") == (
        "sdp-dev-publications",
        "data.csv",
    )
    assert split_s3_uri("s3://bucket/nested/key.csv") == ("bucket", "nested/key.csv")
    with pytest.raises(ValueError):
        split_s3_uri("s3://bucket-only")


def test_parse_csv_text(sample_csv):
    rows = parse_csv_text(sample_csv)
    assert len(rows) == 4
    assert rows[0]["Publication Title"] == "Labour market overview"
    assert rows[0]["publish_dates"] == "2026-09-15;2026-10-13"
    assert rows[2]["BA Lead"] is None
    assert rows[3]["PO2 alignment (FY25/26)"] is None
    assert rows[3]["publish_dates"] is None


def test_parse_csv_text_keeps_values_as_strings():
    rows = parse_csv_text("Publication Title,Frequency\n2024,12\n")
    assert rows == [{"Publication Title": "2024", "Frequency": "12"}]


def test_fetch_from_s3(s3_client, sample_csv):
    data = ("\ufeff" + sample_csv).encode("utf-8")
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "get_object",
            {"Body": _body(data)},
            {"Bucket": "sdp-dev-publications", "Key": "data.csv"},
        )
        text = fetch_csv_text("s3://sdp-dev-publications/data.csv", s3_client=s3_client)
        stubber.assert_no_pending_responses()

    assert text.startswith("Publication Title,")


def test_load_rows_from_s3(s3_client, sample_csv):
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "get_object",
            {"Body": _body(sample_csv.encode("utf-8"))},
            {"Bucket": "bucket", "Key": "data.csv"},
        )
        rows = load_publication_rows("s3://bucket/data.csv", s3_client=s3_client)

    assert [r["Division"] for r in rows] == [
        "Labour",
        "National Accounts",
        "Prices",
        "Demography",
    ]


def test_missing_object_raises_data_source_error(s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_client_error(
            "get_object", service_error_code="NoSuchKey", http_status_code=404
        )
        with pytest.raises(DataSourceError, match="Failed to fetch CSV data"):
            load_publication_rows("s3://bucket/missing.csv", s3_client=s3_client)


def test_empty_object_raises_data_source_error(s3_client):
    with Stubber(s3_client) as stubber:
        stubber.add_response("get_object", {"Body": _body(b"")})
        with pytest.raises(DataSourceError):
            load_publication_rows("s3://bucket/data.csv", s3_client=s3_client)


def test_load_rows_from_local_path(tmp_path, sample_csv):
    path = tmp_path / "data.csv"
    path.write_text(sample_csv, encoding="utf-8")
    rows = load_publication_rows(path)
    assert len(rows) == 4


def test_missing_local_file(tmp_path):
    with pytest.raises(DataSourceError):
        load_publication_rows(tmp_path / "nope.csv")


def test_load_rows_over_http(monkeypatch, sample_csv):
    class FakeResponse:
        content = sample_csv.encode("utf-8")

        def raise_for_status(self):
            return None

    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse()

    monkeypatch.setattr(csv_source.requests, "get", fake_get)
    rows = load_publication_rows("https://example.org/data.csv")
    assert calls == ["https://example.org/data.csv"]
    assert len(rows) == 4
