"""
Run Tillsight API

Helper script to start the FastAPI insight server.
"""

import uvicorn
from tillsight.config import config


def main():
    """Start the insight server."""
    print("=" * 60)
    print("  Tillsight Insight Service")
    print("  Starting FastAPI server...")
    print("=" * 60)
    print(f"\n🌐 Service will run at: http://{config.host}:{config.port}")
    print(f"📊 API docs available at: http://{config.host}:{config.port}/docs")
    if not config.gemini_api_key:
        print("⚠️  GEMINI_API_KEY not set: serving rule-based insights only")
    print("\nPress Ctrl+C to stop\n")

    uvicorn.run(
        "tillsight.server:app",
        host=config.host,
        port=config.port,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
