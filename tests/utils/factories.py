"""Test data factories using Faker."""

from faker import Faker
from typing import Optional

from src.models.listing import ParsedListing, XmlData
from tests.utils.helpers import build_immobilie

fake = Faker()


def create_parsed_listing(original_id: Optional[str] = None, **overrides) -> ParsedListing:
    """ParsedListing with plausible sale data."""
    original_id = original_id or f"obj-{fake.random_int(min=1000, max=9999)}"
    fields = {
        "title": fake.sentence(nb_words=4),
        "description": fake.text(max_nb_chars=120),
        "city": fake.city(),
        "zipcode": fake.postcode(),
        "street": fake.street_address(),
        "country": "PRT",
        "price": float(fake.random_int(min=80000, max=900000)),
        "offer_type": "sale",
        "living_area": float(fake.random_int(min=30, max=250)),
        "rooms": fake.random_int(min=1, max=6),
        "property_type": "apartment",
        "images": [f"images/{original_id}/{i}.jpg" for i in range(2)],
        "xml_data": XmlData(original_id=original_id, raw_xml=f'<immobilie id="{original_id}" />'),
    }
    fields.update(overrides)
    return ParsedListing(**fields)


def create_parsed_listings(count: int) -> list[ParsedListing]:
    return [create_parsed_listing(original_id=f"obj-{i + 1}") for i in range(count)]


def create_immobilie_elements(count: int) -> list[str]:
    """<immobilie> elements with distinct ids, titles and purchase prices."""
    return [
        build_immobilie(
            object_id=f"obj-{i + 1}",
            title=f"{fake.street_name()} {i + 1}",
            city=fake.city(),
            kaufpreis=str(fake.random_int(min=80000, max=900000)),
            wohnflaeche=str(fake.random_int(min=30, max=250)),
            anzahl_zimmer=str(fake.random_int(min=1, max=6)),
        )
        for i in range(count)
    ]


def create_import_ticket_data(agency_id: str = "agency-1", **overrides) -> dict:
    """Row of the imports table."""
    data = {
        "id": fake.uuid4(),
        "agency_id": agency_id,
        "file_name": f"{fake.word()}.xml",
        "num_listings": 12,
        "listings_inserted": 0,
        "status": "processing",
        "import_date": fake.iso8601(),
    }
    data.update(overrides)
    return data
