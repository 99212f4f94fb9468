# main.py
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.rate_limit import start_rate_limiter, stop_rate_limiter
from config.wiring import build_container
from fastapi.responses import JSONResponse
from util.logger import init_logger


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    try:
        limited = await start_rate_limiter()
    except Exception as e:
        print("Failed to connect to Redis:", e)
        raise

    # embedding model, http client and store live for the whole process
    fastApi.state.container = build_container(settings)
    print(
        f"{Color.BLUE}Server Started{Color.RESET} "
        f"store={settings.STORE_BACKEND.value} "
        f"embeddings={settings.EMBEDDING_BACKEND.value} rate_limit={limited}"
    )

    try:
        yield
    finally:
        try:
            await fastApi.state.container.aclose()
        except Exception as e:
            print("Error closing clients:", e)
        try:
            await stop_rate_limiter()
        except Exception as e:
            print("Error closing Redis:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(title="pill-match", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
