"""
Google Contacts Module - People API integration.
"""

from cardscan.environments.google.contacts.client import GooglePeopleClient
from cardscan.environments.google.contacts.schemas import card_to_person

__all__ = [
    "GooglePeopleClient",
    "card_to_person",
]
