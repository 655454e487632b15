# ShareWatch test scripts
from __future__ import annotations

import pytest

from services.csv_parser import (
    auto_detect_mapping,
    decode_csv,
    infer_status,
    map_row_to_intent,
    normalize_media_type,
    normalize_rating,
    normalize_status,
    parse_catalog_id,
    parse_date,
)
from sw_platform.errors import DecodeError
from sw_platform.models import ColumnMapping, ParsedIntent


# decoding

def test_decode_simple_document() -> None:
    headers, rows = decode_csv("title,status\nThe Matrix,finished\n")
    assert headers == ["title", "status"]
    assert rows == [{"title": "The Matrix", "status": "finished"}]


def test_decode_quotes_doubled_quotes_and_crlf() -> None:
    text = 'title,notes\r\n"Crouching Tiger, Hidden Dragon","said ""wow""\nthen left"\r\nHeat,plain\r\n'
    headers, rows = decode_csv(text)
    assert headers == ["title", "notes"]
    assert rows[0] == {"title": "Crouching Tiger, Hidden Dragon", "notes": 'said "wow"\nthen left'}
    assert rows[1] == {"title": "Heat", "notes": "plain"}


def test_decode_skips_blank_lines_and_pads_short_rows() -> None:
    headers, rows = decode_csv("title,status,platform\n\nAlien,finished\n,,\n\nHeat,watching,Netflix,extra\n")
    assert headers == ["title", "status", "platform"]
    assert rows == [
        {"title": "Alien", "status": "finished", "platform": ""},
        {"title": "Heat", "status": "watching", "platform": "Netflix"},
    ]


def test_decode_bytes_with_bom() -> None:
    headers, rows = decode_csv(b"\xef\xbb\xbftitle\nAlien\n")
    assert headers == ["title"]
    assert rows == [{"title": "Alien"}]


def test_decode_duplicate_headers_stay_addressable() -> None:
    headers, rows = decode_csv("title,notes,notes\nAlien,first,second\n")
    assert headers == ["title", "notes", "notes_1"]
    assert rows[0]["notes_1"] == "second"


@pytest.mark.parametrize("data", ["", "\n\n", "title,status\n", "title,status\r\n\r\n", b"\xff\xfe\x00"])
def test_decode_rejects_empty_header_only_and_binary(data: str | bytes) -> None:
    with pytest.raises(DecodeError):
        decode_csv(data)


# mapping heuristic

def test_auto_detect_mapping_matches_synonyms_case_insensitively() -> None:
    headers = ["Name", " Start Date ", "Finished", "Where", "My Rating", "Type", "Comments", "TMDB ID"]
    m = auto_detect_mapping(headers)
    assert m.title == "Name"
    assert m.start_date == " Start Date "
    assert m.end_date == "Finished"
    assert m.platform == "Where"
    assert m.rating == "My Rating"
    assert m.media_type == "Type"
    assert m.notes == "Comments"
    assert m.catalog_id == "TMDB ID"
    assert m.status is None


def test_auto_detect_prefers_first_synonym_and_ignores_partial_matches() -> None:
    m = auto_detect_mapping(["Name", "Title", "Movie Title", "Date Watched"])
    assert m.title == "Title"
    assert m.start_date is None and m.end_date is None


def test_auto_detect_reads_export_header() -> None:
    headers = ["catalogId", "title", "mediaType", "status", "startDate", "endDate", "platform", "notes", "rating"]
    m = auto_detect_mapping(headers)
    assert m.bound() == {
        "title": "title",
        "media_type": "mediaType",
        "status": "status",
        "start_date": "startDate",
        "end_date": "endDate",
        "platform": "platform",
        "notes": "notes",
        "rating": "rating",
        "catalog_id": "catalogId",
    }


def test_binding_a_header_unbinds_it_elsewhere() -> None:
    m = ColumnMapping(title="Name", notes="Remarks")
    m.bind("notes", "Name")
    assert m.title is None
    assert m.notes == "Name"
    m.bind("notes", None)
    assert m.notes is None
    with pytest.raises(KeyError):
        m.bind("director", "Name")


# value normalizers

def test_status_media_and_rating_synonyms() -> None:
    assert normalize_status(" Want to Watch ") == "planned"
    assert normalize_status("Currently Watching") == "in_progress"
    assert normalize_status("seen") == "finished"
    assert normalize_status("abandoned") is None
    assert normalize_media_type("TV Series") == "tv"
    assert normalize_media_type("Films") == "movie"
    assert normalize_media_type("documentary") is None
    assert normalize_rating("10") == "loved"
    assert normalize_rating("8") == "liked"
    assert normalize_rating("Awful") == "disliked"
    assert normalize_rating("7") is None


def test_parse_catalog_id() -> None:
    assert parse_catalog_id("603") == 603
    assert parse_catalog_id(" 42abc") == 42
    assert parse_catalog_id("0") is None
    assert parse_catalog_id("-5") is None
    assert parse_catalog_id("") is None


@pytest.mark.parametrize(
    "raw, order, expected",
    [
        ("2024-01-05", "mdy", "2024-01-05"),
        ("2024-02-30", "mdy", None),
        ("1/5/2024", "mdy", "2024-01-05"),
        ("1/5/2024", "dmy", "2024-05-01"),
        ("25/12/2024", "mdy", None),
        ("25/12/2024", "dmy", "2024-12-25"),
        ("25/12/2024", "auto", "2024-12-25"),
        ("12/25/2024", "auto", "2024-12-25"),
        ("March 3, 2024", "mdy", "2024-03-03"),
        ("2024-01-05T22:30:00Z", "mdy", "2024-01-05"),
        ("2024/07/04", "mdy", "2024-07-04"),
        ("04.07.2024", "mdy", "2024-07-04"),
        ("not a date", "mdy", None),
        ("   ", "mdy", None),
    ],
)
def test_parse_date(raw: str, order: str, expected: str | None) -> None:
    assert parse_date(raw, slash_order=order) == expected


@pytest.mark.parametrize("order", ["mdy", "dmy", "auto"])
def test_impossible_slash_date_is_null_in_every_order(order: str) -> None:
    assert parse_date("31/02/2024", slash_order=order) is None


# row -> intent

def test_scenario_matrix_row_to_intent() -> None:
    headers, rows = decode_csv("title,status\nThe Matrix,finished\n")
    mapping = ColumnMapping(title="title", status="status")
    intent = map_row_to_intent(rows[0], mapping)
    assert intent == ParsedIntent(title="The Matrix", media_type="movie", status="finished")
    assert infer_status(intent) == "finished"


def test_row_with_only_start_date_infers_in_progress() -> None:
    mapping = ColumnMapping(title="t", start_date="s", end_date="e")
    intent = map_row_to_intent({"t": "Severance", "s": "2024-01-01", "e": ""}, mapping)
    assert intent is not None
    assert intent.status is None
    assert infer_status(intent) == "in_progress"


def test_status_inference_order() -> None:
    assert infer_status(ParsedIntent(title="x", end_date="2024-01-02")) == "finished"
    assert infer_status(ParsedIntent(title="x")) == "planned"
    assert infer_status(ParsedIntent(title="x", status="planned", start_date="2024-01-01")) == "planned"


@pytest.mark.parametrize("title", ["", "   ", "\t"])
def test_blank_title_returns_none(title: str) -> None:
    mapping = ColumnMapping(title="title", status="status")
    assert map_row_to_intent({"title": title, "status": "finished"}, mapping) is None


def test_row_coercions_never_raise() -> None:
    mapping = ColumnMapping(
        title="Title", media_type="Kind", status="State", start_date="From", end_date="To",
        platform="Where", notes="Notes", rating="Score", catalog_id="Id",
    )
    row = {
        "Title": "  Dark  ", "Kind": "series", "State": "??", "From": "31/02/2024", "To": "garbage",
        "Where": " Netflix ", "Notes": "", "Score": "9", "Id": "x",
    }
    intent = map_row_to_intent(row, mapping)
    assert intent == ParsedIntent(
        title="Dark", media_type="tv", status=None, start_date=None, end_date=None,
        platform="Netflix", notes=None, rating="liked", catalog_id=None,
    )


def test_unbound_fields_and_missing_columns_default() -> None:
    intent = map_row_to_intent({"title": "Alien"}, ColumnMapping(title="title", status="nope"))
    assert intent == ParsedIntent(title="Alien")
