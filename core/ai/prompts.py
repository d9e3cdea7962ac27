class ReviewSelectorPrompt:
    """
    Prompt asking the model to locate a review widget inside a slice of HTML.
    The model must answer with a single JSON object, either {"found": false}
    or the six selectors nested under "selectors".
    """

    REQUIRED_FIELDS = ("container", "name", "rating", "review", "date", "nextPageSelector")

    @staticmethod
    def extract_selectors() -> str:
        prompt = """
You are a CSS selector extractor. Your task is to analyze HTML and return ONLY a JSON object containing selectors for review elements. If no review elements are found, return {"found": false}. If found, return selectors in this format:
{
  "found": true,
  "selectors": {
    "container": "selector for the review container element",
    "name": "selector for reviewer name element",
    "rating": "selector for rating element",
    "review": "selector for review text element",
    "date": "selector for review date element",
    "nextPageSelector": "selector for next page button"
  }
}

The name, rating, review and date selectors must be relative to the container element.

HTML to analyze:
"""
        return prompt.strip()
