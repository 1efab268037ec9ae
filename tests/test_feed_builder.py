"""Tests for RSS feed generation."""

from xml.etree import ElementTree as ET

from channel_mirror.feed import build_feed_document, mime_type_for, render_feed, write_feed
from channel_mirror.feed.builder import enclosure_url, format_pub_date
from channel_mirror.models import CacheRecord

from conftest import ts


def record(name, date, file=None):
    file = file or f"/data/{name}.m4a"
    return CacheRecord(
        title=name,
        file=file,
        url=f"https://podcasts.example.com/{name}.m4a",
        date=date,
        description=f"About {name}",
        source_url=f"https://odysee.com/@TestChannel/{name}",
    )


class TestOrdering:
    def test_newest_first_regardless_of_append_order(self):
        records = [
            record("march", ts(2023, 3, 1)),
            record("january", ts(2023, 1, 1)),
            record("february", ts(2023, 2, 1)),
        ]

        document = build_feed_document("Feed", records)

        assert [r.title for r in document.records] == ["march", "february", "january"]

    def test_ties_keep_encounter_order(self):
        records = [record("first", 100), record("second", 100), record("third", 100)]

        document = build_feed_document("Feed", records)

        assert [r.title for r in document.records] == ["first", "second", "third"]

    def test_undated_records_sort_as_now(self):
        records = [record("old", ts(2023, 1, 1)), record("undated", None)]

        document = build_feed_document("Feed", records, now=ts(2024, 1, 1))

        assert [r.title for r in document.records] == ["undated", "old"]

    def test_build_does_not_modify_input(self):
        records = [record("a", 1), record("b", 2)]
        build_feed_document("Feed", records)
        assert [r.title for r in records] == ["a", "b"]


class TestRender:
    def test_rss_structure(self):
        document = build_feed_document("My <Channel> & Co", [record("ep", ts(2023, 3, 1))])

        root = ET.fromstring(render_feed(document))

        assert root.tag == "rss"
        assert root.get("version") == "2.0"
        channel = root.find("channel")
        assert channel.findtext("title") == "My <Channel> & Co"
        items = channel.findall("item")
        assert len(items) == 1
        item = items[0]
        assert item.findtext("title") == "ep"
        assert item.findtext("description") == "About ep"
        assert item.findtext("pubDate") == "Wed, 01 Mar 2023 00:00:00 GMT"
        assert item.findtext("guid") == "https://odysee.com/@TestChannel/ep"
        enclosure = item.find("enclosure")
        assert enclosure.get("url") == "https://podcasts.example.com/ep.m4a"
        assert enclosure.get("type") == "audio/mp4"
        assert enclosure.get("length") == "0"

    def test_text_is_escaped(self):
        document = build_feed_document("Feed", [record('Tom & "Jerry" <live>', 1)])

        xml = render_feed(document).decode("utf-8")

        assert "Tom &amp; \"Jerry\" &lt;live&gt;" in xml
        assert ET.fromstring(xml).find("channel/item").findtext("title") == 'Tom & "Jerry" <live>'

    def test_enclosure_length_from_disk(self, tmp_path):
        media = tmp_path / "ep.mp4"
        media.write_bytes(b"x" * 1234)
        document = build_feed_document("Feed", [record("ep", 1, file=str(media))])

        enclosure = ET.fromstring(render_feed(document)).find("channel/item/enclosure")

        assert enclosure.get("length") == "1234"
        assert enclosure.get("type") == "video/mp4"

    def test_undated_record_has_no_pub_date(self):
        document = build_feed_document("Feed", [record("ep", None)])

        item = ET.fromstring(render_feed(document)).find("channel/item")

        assert item.findtext("title") == "ep"
        assert item.find("pubDate") is None

    def test_rendering_undated_records_is_repeatable(self):
        records = [record("undated", None), record("dated", ts(2023, 3, 1))]

        first = render_feed(build_feed_document("Feed", records))
        second = render_feed(build_feed_document("Feed", records))

        assert first == second


def test_mime_types():
    assert mime_type_for("a.mp4") == "video/mp4"
    assert mime_type_for("a.M4A") == "audio/mp4"
    assert mime_type_for("a.mp3") == "audio/mpeg"
    assert mime_type_for("a.mkv") == "application/octet-stream"
    assert mime_type_for("noext") == "application/octet-stream"


def test_enclosure_url():
    assert enclosure_url("https://host/pod/", "/data/ep 1.m4a") == "https://host/pod/ep 1.m4a"
    assert enclosure_url("", "ep.m4a") == "/ep.m4a"


def test_format_pub_date():
    assert format_pub_date(0) == "Thu, 01 Jan 1970 00:00:00 GMT"


def test_write_feed(tmp_path):
    path = tmp_path / "out" / "feed.xml"

    written = write_feed("Feed", [record("a", 1), record("b", 2)], path)

    assert written == path
    titles = [item.findtext("title") for item in ET.parse(path).getroot().iter("item")]
    assert titles == ["b", "a"]


def test_write_feed_twice_gives_identical_bytes(tmp_path):
    path = tmp_path / "feed.xml"
    records = [record("undated", None), record("a", 1)]

    write_feed("Feed", records, path)
    first = path.read_bytes()
    write_feed("Feed", records, path)

    assert path.read_bytes() == first
