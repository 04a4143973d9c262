"""
Google People API Client - create contacts from scanned cards.

API Reference:
==============
- people.createContact: https://developers.google.com/people/api/rest/v1/people/createContact
"""

import logging

from cardscan.environments.base import ContactCreateFailed, EnvironmentService
from cardscan.environments.google.contacts.schemas import card_to_person
from cardscan.schemas.card import CardData


logger = logging.getLogger("cardscan.environments.google.contacts")


class GooglePeopleClient(EnvironmentService):
    """
    Google People API client.

    Requires an access token with the contacts scope.

    Example:
        client = GooglePeopleClient(access_token="ya29.xxx")
        resource_name = await client.create_contact(card)
        # "people/c1234567890"
    """

    service_name = "people"
    required_scopes = ["https://www.googleapis.com/auth/contacts"]
    error_class = ContactCreateFailed

    BASE_URL = "https://people.googleapis.com/v1"

    async def create_contact(self, card: CardData) -> str:
        """
        Create a contact for the card.

        Returns:
            The contact's resourceName

        Raises:
            ContactCreateFailed: If the People API rejects the request
        """
        response_data = await self._make_request(
            method="POST",
            endpoint="/people:createContact",
            json=card_to_person(card),
        )

        resource_name = response_data.get("resourceName")
        if not resource_name:
            raise ContactCreateFailed("People API returned no resourceName")

        logger.info("Created contact", extra={"resource_name": resource_name})
        return resource_name
