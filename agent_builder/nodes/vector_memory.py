import json

from .base import ExecutorNode, parse_int
from ..clients import VectorStoreClient


class EmbeddingGeneratorNode(ExecutorNode):
    """
    Embed text and store it in the vector database.

    The optional source/info/tag/workflow values are stored as metadata
    alongside the node id so later searches can show where a match came from.
    """
    NODE_TYPE = "Embedding Generator"
    DESCRIPTION = "Generate an embedding and store it in the vector store"
    SERVICE_URL_KEY = "vector_store"
    PARAMS = {
        "text": {"name": "Text to Embed", "type": "textarea", "required": True},
        "source": {"name": "Source (optional)"},
        "info": {"name": "Info (optional)"},
        "tag": {"name": "Tag (optional)"},
        "workflow": {"name": "Workflow (optional)"},
    }

    def call(self, prep_res) -> str:
        client = VectorStoreClient(self.endpoint)
        data = client.embed(
            text=prep_res["text"],
            node_id=getattr(self, "id", "unknown"),
            source=prep_res["source"],
            info=prep_res["info"],
            tag=prep_res["tag"],
            workflow=prep_res["workflow"],
        )

        output = "Embedding Generated & Stored\n\n"
        output += f"ID: {data['id']}\n"
        output += f"Dimension: {data['dimension']}\n\n"
        output += "--- Metadata ---\n"
        output += json.dumps(data.get("metadata", {}), indent=2, ensure_ascii=False)
        return output


class SimilaritySearchNode(ExecutorNode):
    """Query the vector store for the entries closest to a search text."""
    NODE_TYPE = "Similarity Search"
    DESCRIPTION = "Query the vector store"
    SERVICE_URL_KEY = "vector_store"
    PARAMS = {
        "query": {"name": "Search Query", "type": "textarea", "required": True},
        "topK": {"name": "Top K Results"},
    }

    DEFAULT_TOP_K = 5
    SNIPPET_CHARS = 100

    def prep(self, shared):
        params = super().prep(shared)
        self.top_k = parse_int(params["topK"], self.DEFAULT_TOP_K)
        return params

    def call(self, prep_res) -> str:
        client = VectorStoreClient(self.endpoint)
        data = client.search(prep_res["query"], top_k=self.top_k)
        matches = data["matches"]

        output = "Similarity Search Complete\n\n"
        output += f"Query: {data.get('query', prep_res['query'])}\n"
        output += f"Results Found: {data.get('resultsCount', len(matches))}\n\n"
        output += f"--- Top {data.get('topK', self.top_k)} Matches ---\n\n"

        for i, match in enumerate(matches, start=1):
            score = float(match.get("score") or 0.0)
            text = str(match.get("text") or "")
            output += f"{i}. Score: {score:.4f}\n"
            output += f"   Text: {text[:self.SNIPPET_CHARS]}...\n"
            if match.get("source"):
                output += f"   Source: {match['source']}\n"
            if match.get("tag"):
                output += f"   Tag: {match['tag']}\n"
            output += "\n"
        return output
