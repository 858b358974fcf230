# main.py

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("stayfinder")

from database.connection import MONGODB_DB, ensure_indexes, get_client
from bookings.errors import BookingError

# Import routers
from users.users import router as users_router
from listings.listings import router as listings_router
from bookings.bookings import router as bookings_router

app = FastAPI(title="StayFinder API", version="1.0.0")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_db_client():
    app.mongodb_client = get_client()
    app.mongodb = app.mongodb_client[MONGODB_DB]
    await ensure_indexes(app.mongodb)
    logger.info("Connected to MongoDB database %s", MONGODB_DB)

@app.on_event("shutdown")
async def shutdown_db_client():
    app.mongodb_client.close()

# --- Error handlers ---

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Database error, please try again later", "code": "storage_error"})

# Include all routers
app.include_router(users_router)
app.include_router(listings_router)
app.include_router(bookings_router)

@app.get("/")
async def root():
    return {"message": "StayFinder API running"}

@app.get("/health")
async def health(request: Request):
    try:
        await request.app.mongodb.command("ping")
    except PyMongoError as e:
        logger.warning("Health check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unavailable"})
    return {"status": "ok", "database": "connected"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
