"""
Card Extraction Prompts - instruction sent with every card photo.

The model is asked for one JSON object with exactly the CardData keys. It
often wraps the answer in a ```json fence or adds a sentence around it;
cardscan.services.card_extraction copes with both.
"""


# ---------------------------------------------------------------------------
# CARD EXTRACTION PROMPT
# ---------------------------------------------------------------------------

CARD_EXTRACTION_PROMPT = """You are an expert OCR and data extraction assistant.
Extract all relevant information from this business card image and return as JSON with keys:
{
  "name": "",
  "company": "",
  "job_title": "",
  "email": "",
  "phone": "",
  "website": "",
  "address": "",
  "social_links": []
}
If a field is missing, leave it blank."""


# Generation settings for extraction: near-deterministic, room for long addresses
CARD_EXTRACTION_TEMPERATURE = 0.1
CARD_EXTRACTION_MAX_TOKENS = 2048
