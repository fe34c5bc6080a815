"""OpenImmo XML normalizer - turn <immobilie> elements into ParsedListing records.

Lookups match on local tag names, so feeds with a default namespace, a prefixed
namespace or no namespace at all produce the same records.
"""

import re
import xml.etree.ElementTree as ET
from typing import Callable, Iterator, Optional, Sequence

from src.models.listing import ParsedListing, XmlData
from src.utils.errors import ParseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

LISTING_TAG = "immobilie"
PICTURE_GROUP = "BILDER"

# Bare "&" not starting one of the predefined XML entities
_BARE_AMPERSAND = re.compile(r"&(?!amp;|lt;|gt;|apos;|quot;)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def local_name(tag) -> str:
    """Tag without its "{namespace}" part."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def iter_descendants(parent: ET.Element, name: str) -> Iterator[ET.Element]:
    """Descendants of parent with the given local name, in document order."""
    for element in parent.iter():
        if element is not parent and local_name(element.tag) == name:
            yield element


def find_first(parent: ET.Element, name: str) -> Optional[ET.Element]:
    return next(iter_descendants(parent, name), None)


def find_path(parent: ET.Element, path: Sequence[str]) -> Optional[ET.Element]:
    """Follow path one level at a time, taking the first match at each step."""
    current = parent
    for name in path:
        current = find_first(current, name)
        if current is None:
            return None
    return current


def element_text(element: Optional[ET.Element]) -> Optional[str]:
    """Trimmed text content of element and its children, None when blank."""
    if element is None:
        return None
    text = "".join(element.itertext()).strip()
    return text or None


def parse_float(text: Optional[str]) -> Optional[float]:
    """Leading decimal number of text ("85 m2" -> 85.0), None if there is none."""
    if not text:
        return None
    match = _LEADING_FLOAT.match(text)
    return float(match.group(1)) if match else None


def parse_int(text: Optional[str]) -> Optional[int]:
    """Leading integer of text ("3.5" -> 3), None if there is none."""
    if not text:
        return None
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def sanitize_ampersands(xml_text: str) -> str:
    """Escape bare ampersands so feeds with "Haus & Garten" still parse."""
    return _BARE_AMPERSAND.sub("&amp;", xml_text)


# field -> (candidate paths, first non-empty wins; converter)
FIELD_TABLE: dict[str, tuple[tuple[tuple[str, ...], ...], Callable[[Optional[str]], object]]] = {
    "title": ((("freitexte", "objekttitel"),), lambda text: text),
    "description": (
        (("freitexte", "dreizeiler"), ("freitexte", "objektbeschreibung")),
        lambda text: text,
    ),
    "city": ((("geo", "ort"),), lambda text: text),
    "zipcode": ((("geo", "plz"),), lambda text: text),
    "street": ((("geo", "strasse"),), lambda text: text),
    "country": ((("geo", "land"),), lambda text: text),
    "latitude": ((("geo", "breitengrad"),), parse_float),
    "longitude": ((("geo", "laengengrad"),), parse_float),
    "living_area": ((("flaechen", "wohnflaeche"),), parse_float),
    "rooms": ((("ausstattung", "anzahl_zimmer"),), parse_int),
}

# Mutually exclusive price sources and the offer type each one implies
PRICE_SOURCES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("preise", "kaufpreis"), "sale"),
    (("preise", "nettokaltmiete"), "rent"),
)

# Category markers under objektkategorie/objektart
PROPERTY_TYPE_MARKERS: tuple[tuple[str, str], ...] = (
    ("wohnung", "apartment"),
    ("haus", "house"),
    ("grundstueck", "land"),
)


def _extract_field(immobilie: ET.Element, paths, convert) -> object:
    for path in paths:
        value = convert(element_text(find_path(immobilie, path)))
        if value is not None:
            return value
    return None


def _extract_price(immobilie: ET.Element) -> tuple[Optional[float], Optional[str]]:
    found = []
    for path, offer_type in PRICE_SOURCES:
        price = parse_float(element_text(find_path(immobilie, path)))
        if price is not None:
            found.append((price, offer_type))

    if len(found) != 1:
        return None, None
    return found[0]


def _extract_property_type(immobilie: ET.Element) -> Optional[str]:
    objektart = find_path(immobilie, ("objektkategorie", "objektart"))
    if objektart is None:
        return None
    for marker, property_type in PROPERTY_TYPE_MARKERS:
        if find_first(objektart, marker) is not None:
            return property_type
    return None


def _extract_images(immobilie: ET.Element) -> list[str]:
    images = []
    for anhang in iter_descendants(immobilie, "anhang"):
        if anhang.get("gruppe") != PICTURE_GROUP:
            continue
        for daten in iter_descendants(anhang, "daten"):
            mime_type = element_text(find_first(daten, "format"))
            path = element_text(find_first(daten, "pfad"))
            if mime_type and path and mime_type.lower().startswith("image/"):
                images.append(path)
    return images


def serialize_element(element: ET.Element) -> str:
    """Standalone XML for element, without the whitespace that trails it in the feed."""
    tail = element.tail
    element.tail = None
    try:
        return ET.tostring(element, encoding="unicode")
    finally:
        element.tail = tail


def parse_listing(immobilie: ET.Element) -> ParsedListing:
    """Map one <immobilie> element to a ParsedListing."""
    fields = {}
    for field_name, (paths, convert) in FIELD_TABLE.items():
        value = _extract_field(immobilie, paths, convert)
        if value is not None:
            fields[field_name] = value

    price, offer_type = _extract_price(immobilie)
    if price is not None:
        fields["price"] = price
        fields["offer_type"] = offer_type

    property_type = _extract_property_type(immobilie)
    if property_type:
        fields["property_type"] = property_type

    return ParsedListing(
        **fields,
        images=_extract_images(immobilie),
        xml_data=XmlData(
            original_id=immobilie.get("id") or None,
            raw_xml=serialize_element(immobilie),
        ),
    )


def parse_document(xml_text: str) -> ET.Element:
    """Parse sanitized feed text into its root element."""
    try:
        root = ET.fromstring(sanitize_ampersands(xml_text))
    except ET.ParseError as e:
        raise ParseError(f"Invalid XML: {e}") from e

    if local_name(root.tag) == "parsererror" or find_first(root, "parsererror") is not None:
        raise ParseError("Invalid XML: parser error reported in document")
    return root


def normalize(xml_text: str) -> list[ParsedListing]:
    """
    Parse an OpenImmo document into ParsedListing records.

    Returns one record per <immobilie> element, in document order.
    Raises ParseError for malformed XML or a document without listings.
    """
    root = parse_document(xml_text)

    if local_name(root.tag) == LISTING_TAG:
        elements = [root]
    else:
        elements = list(iter_descendants(root, LISTING_TAG))

    if not elements:
        raise ParseError("File does not contain valid OpenImmo listings")

    listings = [parse_listing(element) for element in elements]

    logger.debug(
        "Normalized OpenImmo document",
        listings_count=len(listings),
        with_price=sum(1 for listing in listings if listing.price is not None),
        with_images=sum(1 for listing in listings if listing.images),
    )
    return listings
