"""
tgcp - terminal browser and operator for Google Cloud resources.
"""

from dotenv import load_dotenv

from tgcp.version import __version__

# Load environment variables from .env file
load_dotenv()

__all__ = ["__version__"]
