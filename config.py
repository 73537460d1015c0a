import os
from pathlib import Path

# Define the root directory of the project
ROOT_DIR = Path(__file__).resolve().parent

# Define paths for commonly used files
WORKFLOWS_DIR = Path(os.environ.get("WORKFLOWS_DIR", ROOT_DIR / "workflows"))

# App Defaults - Remote service endpoints
GENERATION_URL = os.environ.get("GENERATION_URL", "http://localhost:3000/api/gemini")
EXTRACTION_URL = os.environ.get("EXTRACTION_URL", "http://localhost:3000/api/web-scrape")
VECTOR_STORE_URL = os.environ.get("VECTOR_STORE_URL", "http://localhost:3000/api/pinecone")
SCHEMA_URL = os.environ.get("SCHEMA_URL", "http://localhost:3000/api/generate-schema")
PARSE_URL = os.environ.get("PARSE_URL", "http://localhost:3000/api/parse-json")

# The remote services cap their own processing at 60 seconds
REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", 60))

LOG_BUFFER_SIZE = 100
