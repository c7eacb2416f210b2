"""xurl

Auth enabled curl-like interface for the X API.
"""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("xurl")
except PackageNotFoundError:
    # Running from a source checkout
    __version__ = "0.1.0"
__author__ = "xurl"
