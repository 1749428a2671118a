"""
Entry point for the Legal Case Management Service.
"""

import logging
import os

import uvicorn

from legal_case_management.config import get_settings


def main():
    """Main entry point for the application."""
    logger = logging.getLogger("legal_case_management")
    logger.info("Starting Legal Case Management Service")

    port = int(os.getenv("PORT", "8000"))

    uvicorn.run(
        "legal_case_management.api.app:app",
        host="0.0.0.0",
        port=port,
        reload=get_settings().debug,
    )


if __name__ == "__main__":
    main()
