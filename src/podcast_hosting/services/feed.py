"""Podcast RSS feed built from the stored audio records."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Iterable

from podcast_hosting.models.audio import AudioRecord
from podcast_hosting.services.services import content_type_for

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
PODCAST_NS = "http://podcastindex.org/namespace/1.0"
ATOM_NS = "http://www.w3.org/2005/Atom"

FEED_CONTENT_TYPE = "application/rss+xml"
FEED_LANGUAGE = "ru-ru"
FEED_CATEGORY = ("Arts", "Books")
FEED_IMAGE_PATH = "images/logo.jpg"

ET.register_namespace("itunes", ITUNES_NS)
ET.register_namespace("atom", ATOM_NS)


def _as_pubdate(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


def build_feed(
    records: Iterable[AudioRecord],
    channel_title: str,
    channel_description: str,
    base_uri: str,
) -> str:
    """Render ``records`` as an RSS 2.0 podcast feed.

    Items keep the order of ``records`` (oldest upload first when fed from
    the repository listing). Every record produces exactly one item.
    """
    base = base_uri.rstrip("/")

    rss = ET.Element("rss", attrib={"version": "2.0"})
    # ElementTree only declares namespaces that elements use.
    rss.set("xmlns:podcast", PODCAST_NS)
    channel = ET.SubElement(rss, "channel")

    atom_self = ET.SubElement(channel, f"{{{ATOM_NS}}}link")
    atom_self.set("href", f"{base}/feed.rss")
    atom_self.set("rel", "self")
    atom_self.set("type", FEED_CONTENT_TYPE)
    ET.SubElement(channel, "title").text = channel_title
    ET.SubElement(channel, "link").text = f"{base}/"
    ET.SubElement(channel, "description").text = channel_description
    ET.SubElement(channel, "language").text = FEED_LANGUAGE

    parent_category, child_category = FEED_CATEGORY
    category = ET.SubElement(channel, f"{{{ITUNES_NS}}}category", text=parent_category)
    ET.SubElement(category, f"{{{ITUNES_NS}}}category", text=child_category)
    ET.SubElement(channel, f"{{{ITUNES_NS}}}explicit").text = "no"
    ET.SubElement(channel, f"{{{ITUNES_NS}}}image", href=f"{base}/{FEED_IMAGE_PATH}")

    for record in records:
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = record.display_title
        ET.SubElement(
            item,
            "enclosure",
            url=f"{base}/download/{record.id}",
            length=str(record.size_bytes),
            type=content_type_for(record.extension),
        )
        ET.SubElement(item, "guid", isPermaLink="false").text = record.id
        ET.SubElement(item, "pubDate").text = _as_pubdate(record.uploaded_at)

    return ET.tostring(rss, encoding="utf-8", xml_declaration=True).decode("utf-8")
