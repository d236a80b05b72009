"""
Prompt and response schema for purchase request extraction.

The system instruction is written in Japanese for university accounting
staff documents (請求書, 納品書, 領収書). The response schema uses the
Gemini REST ``Schema`` format so the service returns bare JSON.
"""

SYSTEM_INSTRUCTION = """あなたは大学の経理事務の専門家です。
渡された請求書・納品書・領収書の画像/PDFから、会計システム入力に必要な情報を抽出してください。

以下のルールを厳守してください：
1. 日付は YYYY-MM-DD 形式に統一してください。不明な場合は本日の日付を入れてください。
2. 商品名が長すぎる場合は、重要な型番やキーワードを残して要約してください。
3. 広告、クーポン、注釈などの明細以外のテキストは無視してください。
4. 金額はすべて「税込単価」として抽出してください。
5. 数量が明記されていない場合は 1 としてください。
6. 単位が不明な場合は「個」または「式」としてください。
"""

USER_PROMPT = "Extract the purchase request data from this document, adhering to the JSON schema."

ITEM_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {
            "type": "STRING",
            "description": "Product name or description. Keep important model numbers.",
        },
        "quantity": {
            "type": "NUMBER",
            "description": "Quantity of the item.",
        },
        "unit": {
            "type": "STRING",
            "description": "Unit of measure (e.g., 個, 式, 箱). Default to '個' if unknown.",
        },
        "unitPriceIncTax": {
            "type": "NUMBER",
            "description": "Unit price including tax.",
        },
    },
    "required": ["name", "quantity", "unitPriceIncTax"],
}

INVOICE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "date": {
            "type": "STRING",
            "description": "Invoice or order date in YYYY-MM-DD format.",
        },
        "vendorName": {
            "type": "STRING",
            "description": "Name of the vendor/supplier.",
        },
        "requesterName": {
            "type": "STRING",
            "description": "Name of the person ordering (if visible).",
        },
        "deliveryDestination": {
            "type": "STRING",
            "description": "Delivery address or department name.",
        },
        "items": {
            "type": "ARRAY",
            "items": ITEM_SCHEMA,
            "description": "List of purchased items.",
        },
    },
    "required": ["date", "vendorName", "items"],
}


def build_request_body(media_type: str, base64_data: str, temperature: float = 0.1) -> dict:
    """generateContent request body for one inline document."""
    return {
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"inlineData": {"mimeType": media_type, "data": base64_data}},
                    {"text": USER_PROMPT},
                ],
            }
        ],
        "generationConfig": {
            "temperature": temperature,
            "responseMimeType": "application/json",
            "responseSchema": INVOICE_SCHEMA,
        },
    }
