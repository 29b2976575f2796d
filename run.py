import os
import uvicorn
from runledger.core.config import get_settings

def main():
    settings = get_settings()

    # Ensure the workspace exists before the ledger opens its store there
    os.makedirs(settings.WORKSPACE_ROOT, exist_ok=True)

    # Run uvicorn
    uvicorn.run(
        "runledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )

if __name__ == "__main__":
    main()
