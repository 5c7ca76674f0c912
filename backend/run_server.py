"""Run the till backend with uvicorn. Host and port come from POS_HOST / POS_PORT."""
import os
import signal
import sys

import uvicorn

from pharmacy_pos.core.config import settings


def handle_signal(sig, frame):
    print(f"\nReceived signal {sig}, closing the till backend...")
    sys.exit(0)


signal.signal(signal.SIGINT, handle_signal)
signal.signal(signal.SIGTERM, handle_signal)

if __name__ == "__main__":
    host = os.getenv("POS_HOST", "127.0.0.1")
    port = int(os.getenv("POS_PORT", "8000"))
    print(f"Pharmacy Fast Order backend on http://{host}:{port}")
    print(f"  database:    {settings.DATABASE_URL}")
    print(f"  write mode:  {settings.ORDER_WRITE_MODE}")
    print(f"  rounding:    {settings.PRICE_REMAINDER_POLICY}, {settings.CURRENCY_DECIMALS} decimals")
    uvicorn.run(
        "pharmacy_pos.main:app",
        host=host,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEBUG,
    )
