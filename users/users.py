# users.py

from fastapi import APIRouter, HTTPException, Request, Depends
from fastapi.security import HTTPBearer
from models.user import User, UserCreate, UserLogin, UserResponse
from auth.jwt_handler import create_access_token, verify_token
from auth.password_handler import hash_password, verify_password
from bson import ObjectId
from datetime import datetime
from pymongo.errors import DuplicateKeyError
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

# --- Authentication Dependencies ---

async def get_current_user(request: Request) -> User:
    """Verify the bearer token and load the account it belongs to."""
    credentials = await HTTPBearer(auto_error=False)(request)
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication credentials were not provided.")
    payload = verify_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(status_code=401, detail="Invalid token.")
    user_id = payload["sub"]
    if not ObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Invalid token.")
    user = await request.app.mongodb["users"].find_one({"_id": ObjectId(user_id)})
    if not user:
        raise HTTPException(status_code=401, detail="User not found.")
    user["id"] = str(user["_id"])
    return User(**user)

async def get_current_host(current_user: User = Depends(get_current_user)) -> User:
    # The role is read from the stored account, so a freshly promoted host
    # does not need a new token.
    if not current_user.is_host:
        raise HTTPException(status_code=403, detail="Access forbidden: Host role required.")
    return current_user

# --- Endpoints ---

@router.post("/register", response_model=UserResponse, status_code=201)
async def register_user(user: UserCreate, request: Request):
    db = request.app.mongodb
    email = user.email.lower()
    existing_user = await db["users"].find_one({"email": email})
    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")
    user_doc = {
        "name": user.name,
        "email": email,
        "password": hash_password(user.password),
        "phone": user.phone,
        "role": user.role,
        "created_at": datetime.utcnow(),
    }
    try:
        result = await db["users"].insert_one(user_doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")
    user_doc["id"] = str(result.inserted_id)
    logger.info("Registered %s account %s", user.role, user_doc["id"])
    return UserResponse(**user_doc)

@router.post("/login")
async def login_user(user_credentials: UserLogin, request: Request):
    user = await request.app.mongodb["users"].find_one({"email": user_credentials.email.lower()})
    if not user or not verify_password(user_credentials.password, user.get("password")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    access_token = create_access_token(data={"sub": str(user["_id"])}, user_type=user.get("role", "user"))
    user["id"] = str(user["_id"])
    return {"access_token": access_token, "token_type": "bearer", "user": UserResponse(**user)}

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user

@router.post("/me/become-host", response_model=UserResponse)
async def become_host(request: Request, current_user: User = Depends(get_current_user)):
    """Promotes the current account to a host so it can publish listings."""
    if not current_user.is_host:
        await request.app.mongodb["users"].update_one(
            {"_id": ObjectId(current_user.id)},
            {"$set": {"role": "host"}}
        )
        current_user.role = "host"
        logger.info("User %s became a host", current_user.id)
    return current_user
