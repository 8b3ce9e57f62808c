"""Configuration management for MimicChat."""
import os
from dotenv import load_dotenv

from logger import setup_logging

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Embedding Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "768"))
HF_INFERENCE_URL = os.getenv("HF_INFERENCE_URL", "https://api-inference.huggingface.co/models")
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30"))  # seconds

# Generation Configuration
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.1-8b-instant")
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "500"))
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", "60"))  # seconds

# Storage Configuration
STORE_BACKEND = os.getenv("STORE_BACKEND", "supabase")  # "supabase" or "memory"
TURNS_TABLE = os.getenv("TURNS_TABLE", "chat_messages")
MATCH_FUNCTION = os.getenv("MATCH_FUNCTION", "match_chat_messages")
STORE_TIMEOUT = int(os.getenv("STORE_TIMEOUT", "10"))  # seconds

# Retrieval Configuration
SIMILAR_TURNS_K = int(os.getenv("SIMILAR_TURNS_K", "3"))
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))

# Keep generation-failure turns in the similarity corpus
INDEX_FAILED_GENERATIONS = os.getenv("INDEX_FAILED_GENERATIONS", "false").lower() in ("1", "true", "yes")

# Failure reports (JSON Lines); unset means log only
FAILURE_LOG_PATH = os.getenv("FAILURE_LOG_PATH") or None

# Logging Configuration
setup_logging(LOG_LEVEL, json_format=LOG_FORMAT == "json")
