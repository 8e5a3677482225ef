from types import SimpleNamespace

import pytest

from umkm.services.image_refs import get_all_images, parse_images, serialize_images


@pytest.mark.parametrize(
    "urls",
    [
        ["https://cdn.test/umkm-images/additional/1.jpg"],
        ["a", "b", "c"],
        ["https://cdn.test/x y.png", "ünïcode.webp", "with\"quote.gif"],
    ],
)
def test_parse_inverts_serialize(urls):
    assert parse_images(serialize_images(urls)) == urls


def test_empty_list_is_stored_as_null():
    assert serialize_images([]) is None
    assert parse_images(None) == []
    assert parse_images("") == []


def test_parse_tolerates_bad_column_values():
    assert parse_images("not json") == []
    assert parse_images('{"a": 1}') == []
    assert parse_images('["ok", 3, null, ""]') == ["ok"]


def test_get_all_images_main_first_and_skips_blanks():
    listing = SimpleNamespace(
        main_image="https://cdn.test/main.jpg",
        images_text=serialize_images(["https://cdn.test/1.jpg", "   ", "https://cdn.test/2.jpg"]),
    )
    assert get_all_images(listing) == [
        "https://cdn.test/main.jpg",
        "https://cdn.test/1.jpg",
        "https://cdn.test/2.jpg",
    ]


def test_get_all_images_without_main():
    listing = SimpleNamespace(main_image="  ", images_text=serialize_images(["https://cdn.test/1.jpg"]))
    assert get_all_images(listing) == ["https://cdn.test/1.jpg"]
