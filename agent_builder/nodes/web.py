import json

from .base import ExecutorNode
from ..clients import ExtractionClient


class WebScrapingNode(ExecutorNode):
    """Extract data from a web page with a browser-driven extraction service."""
    NODE_TYPE = "Web Scraping"
    DESCRIPTION = "Extract data from a website with natural-language instructions"
    SERVICE_URL_KEY = "extraction"
    PARAMS = {
        "url": {"name": "Website URL", "required": True},
        "instruction": {"name": "What to Extract", "type": "textarea", "required": True},
    }

    def call(self, prep_res) -> str:
        client = ExtractionClient(self.endpoint)
        data = client.extract(prep_res["url"], prep_res["instruction"])

        output = "Extraction Complete\n\n"
        output += f"URL: {data.get('url', prep_res['url'])}\n"
        output += f"Instruction: {data.get('instruction', prep_res['instruction'])}\n\n"
        output += "--- Extracted Data ---\n"
        output += json.dumps(data["data"], indent=2, ensure_ascii=False)
        return output
