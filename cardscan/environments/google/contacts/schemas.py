"""
Google People Schemas - mapping a scanned card onto a contact "person".

Reference: https://developers.google.com/people/api/rest/v1/people#Person
"""

from typing import Any, Dict

from cardscan.schemas.card import CardData


def card_to_person(card: CardData) -> Dict[str, Any]:
    """
    Build the people.createContact request body for a card.

    The name goes into givenName and the company into familyName, which is
    how the web client has always filed contacts. The other lists are
    always present and stay empty when their field is blank.
    """
    person: Dict[str, Any] = {
        "names": [
            {
                "givenName": card.name,
                "middleName": "",
                "familyName": card.company,
            }
        ],
        "emailAddresses": [],
        "phoneNumbers": [],
        "organizations": [],
        "addresses": [],
        "urls": [],
    }

    if card.email:
        person["emailAddresses"].append({"value": card.email, "type": "work"})
    if card.phone:
        person["phoneNumbers"].append({"value": card.phone, "type": "work"})
    if card.company:
        person["organizations"].append(
            {"name": card.company, "title": card.job_title, "type": "work"}
        )
    if card.address:
        person["addresses"].append({"streetAddress": card.address, "type": "work"})
    if card.website:
        person["urls"].append({"value": card.website, "type": "work"})

    return person
