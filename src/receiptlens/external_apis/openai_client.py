import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from receiptlens.exceptions import GenerationFailure

logger = logging.getLogger(__name__)


RECEIPT_SCHEMA_INSTRUCTIONS = """\
You are a highly accurate and meticulous receipt parsing AI. Your primary goal is to transform raw OCR-extracted receipt text into a structured JSON object, strictly adhering to the specified schema.

Extract the following fields into a JSON object. If a field's value cannot be confidently extracted, use null for numeric types or an empty string/array as appropriate.

1. "store_name" (string): The official name of the retail establishment (e.g., "DOLLAR TREE", "Walmart", "Safeway"). Prioritize distinct branding over generic terms.
2. "location" (string): The full address of the store, including street, city, state, and zip code. Concatenate all available address components.
3. "date" (string): The date of the purchase, formatted strictly as "YYYY-MM-DD". If multiple dates are present, choose the most prominent one.
4. "subtotal" (float): The total cost of items before tax. Round to two decimal places. Use null if not found.
5. "tax" (float): The sales tax amount applied. Round to two decimal places. Use null if not found.
6. "total" (float): The grand total amount paid. This field is mandatory; if it cannot be extracted use null. Round to two decimal places.
7. "items" (array of objects): Individual products, services, or adjustments (like discounts or bag fees). Each item object MUST have:
   - "description" (string): The exact description as it appears on the receipt.
   - "general_name" (string): A normalized, human-readable name used to group the same product across receipts (e.g., "GARLIC LOOSE" -> "garlic"). Use "discount" for discounts and "bag fee" for bag fees.
   - "qty" (integer): The quantity. Default to 1 if no explicit quantity is found.
   - "unit_price" (float): The price per unit before line-item discounts. Infer price / qty if not listed. Use null if indeterminable or not applicable.
   - "price" (float): The total price of this line as it appears on the receipt. Discounts are negative.
   - "tags" (array of strings): One or more lowercase categories from: groceries, produce, dairy, pantry, household, personal_care, apparel, electronics, entertainment, pharmacy, automotive, pet_supplies, other, discount, fee.

Format rules:
- Currency values (subtotal, tax, total, unit_price, price) are floats without currency symbols or thousands separators.
- If a numeric field cannot be reliably extracted, its value must be null.
- The response MUST be a valid JSON object ONLY, with no explanations or Markdown formatting.
"""


def build_receipt_parsing_prompt(full_text: str) -> str:
    """Embeds the OCR text of a receipt after the schema instructions."""
    return (
        f"{RECEIPT_SCHEMA_INSTRUCTIONS}\n"
        "Receipt text for parsing:\n"
        "---\n"
        f"{full_text}\n"
        "---\n"
    )


def create_openai_client(api_key: Optional[str], timeout: float = 60.0) -> Optional[AsyncOpenAI]:
    """Builds the AsyncOpenAI client once at startup. None when no key is configured."""
    if not api_key:
        logger.warning("OPENAI_API_KEY is not set. Structured extraction will not be functional.")
        return None
    return AsyncOpenAI(api_key=api_key, timeout=timeout)


class OpenAIStructuredExtractor:
    def __init__(self, client: Optional[AsyncOpenAI], model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    async def generate(self, prompt: str) -> str:
        """
        Sends the prompt in JSON mode and returns the raw response text.
        The caller is responsible for parsing and validating it.

        Raises:
            GenerationFailure: the client is not configured, the API call
                failed, or the model returned no content.
        """
        if not self.client:
            raise GenerationFailure("OpenAI client not initialized")

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0.2,  # Lower temperature for more deterministic output
            )
        except OpenAIError as e:
            raise GenerationFailure(f"OpenAI API error: {e}") from e

        response_content = completion.choices[0].message.content
        if not response_content:
            raise GenerationFailure("OpenAI API returned empty content")

        logger.debug(f"OpenAI raw response: {response_content}")
        return response_content
