"""
Routers module - API endpoint handlers organized by feature.

Each router handles a specific domain of the API:
- auth: Google sign-in, current user, logout
- cards: Card extraction, Sheets sync, Contacts export
"""
