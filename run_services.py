import asyncio
import uvicorn

from leasing_service.worker import build_scheduler


async def start_services():
    # API
    config = uvicorn.Config(
        "leasing_service.app.main:app",
        host="0.0.0.0",
        port=8003,
        reload=False,
    )
    server = uvicorn.Server(config)

    # Billing worker (blocking scheduler on its own thread)
    scheduler = build_scheduler()

    try:
        await asyncio.gather(
            server.serve(),
            asyncio.to_thread(scheduler.start),
        )
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)

if __name__ == "__main__":
    try:
        asyncio.run(start_services())
    except KeyboardInterrupt:
        print("\nShutting down services...")
