"""
Contact export service - saves one scanned card as a Google contact.
"""

import logging
from typing import Callable, Optional

from cardscan.environments.base import Unauthenticated
from cardscan.environments.google.contacts import GooglePeopleClient
from cardscan.schemas.card import CardData
from cardscan.schemas.session import Session


logger = logging.getLogger("cardscan.contacts")


class ContactExportService:
    """Creates People API contacts with the session's delegated token."""

    def __init__(self, client_factory: Callable[[str], GooglePeopleClient] = GooglePeopleClient):
        self._client_factory = client_factory

    async def add_contact(self, session: Optional[Session], card: CardData) -> str:
        """
        Create a contact from the card.

        Returns:
            The contact's resourceName ("people/c...")

        Raises:
            Unauthenticated: If there is no session or access token
            ContactCreateFailed: If the People API rejects the request
        """
        if session is None or not session.tokens.access_token:
            raise Unauthenticated("Not authenticated. Please sign in.")

        client = self._client_factory(session.tokens.access_token)
        resource_name = await client.create_contact(card)

        logger.info(
            f"Contact created for user {session.user_id}",
            extra={"resource_name": resource_name},
        )
        return resource_name


# Usage: from cardscan.services.contact_export import contact_export
contact_export = ContactExportService()
