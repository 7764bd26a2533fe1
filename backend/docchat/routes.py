import logging
import os
import secrets
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool

from .auth import authenticate_user, get_current_user, issue_token, register_user, revoke_token
from .errors import DocumentNotFound, ExtractionFailed, UnsupportedFileType, ValidationError
from .extractor import SUPPORTED_EXTENSIONS, extract_text, file_extension
from .models import ChatTurn, Document, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def user_to_dict(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email}


def document_to_dict(doc: Document, include_text: bool = False) -> Dict[str, Any]:
    data = {
        "id": doc.document_id,
        "filename": doc.filename,
        "wordCount": doc.word_count,
        "charCount": doc.char_count,
        "createdAt": doc.created_at.isoformat(),
    }
    if include_text:
        data["text"] = doc.text
    return data


def turn_to_dict(turn: ChatTurn) -> Dict[str, Any]:
    return {
        "role": turn.role.value,
        "content": turn.content,
        "tokensUsed": turn.tokens_used,
        "timestamp": turn.created_at.isoformat(),
    }


async def read_json(request: Request) -> Dict[str, Any]:
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def required_str(data: Dict[str, Any], key: str, strip: bool = True) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required")
    return value.strip() if strip else value


# -------------------------------------------------------------------
# Auth
# -------------------------------------------------------------------
@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
async def register(request: Request):
    data = await read_json(request)
    name = required_str(data, "name")
    email = required_str(data, "email")
    password = required_str(data, "password", strip=False)
    engine = request.app.state.engine
    user = register_user(engine, name, email, password)
    return {"token": issue_token(engine, user), "user": user_to_dict(user)}


@router.post("/auth/login")
async def login(request: Request):
    data = await read_json(request)
    email = required_str(data, "email")
    password = required_str(data, "password", strip=False)
    engine = request.app.state.engine
    user = authenticate_user(engine, email, password)
    return {"token": issue_token(engine, user), "user": user_to_dict(user)}


@router.post("/auth/logout")
async def logout(request: Request, user: User = Depends(get_current_user)):
    revoke_token(request.app.state.engine, user)
    return {"success": True, "message": "Successfully logged out"}


@router.get("/auth/me")
async def me(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user)}


# -------------------------------------------------------------------
# Documents
# -------------------------------------------------------------------
def _stored_name(ext: str) -> str:
    return f"document-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


@router.post("/documents")
async def upload(request: Request, file: UploadFile = File(...), user: User = Depends(get_current_user)):
    if not file or not file.filename:
        raise ValidationError("No file uploaded")

    ext = file_extension(file.filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileType()

    settings = request.app.state.settings
    # Read at most one byte past the limit
    data = await file.read(settings.max_upload_bytes + 1)
    if not data:
        raise ValidationError("Empty file provided")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(f"File exceeds the {settings.max_upload_bytes} byte upload limit")

    text = await run_in_threadpool(extract_text, data, ext)
    if not text.strip():
        raise ExtractionFailed("Could not extract readable text from this file.")

    os.makedirs(settings.upload_dir, exist_ok=True)
    file_path = os.path.join(settings.upload_dir, _stored_name(ext))
    with open(file_path, "wb") as f:
        f.write(data)

    try:
        doc = request.app.state.documents.create(user.id, file.filename, text, file_path)
    except Exception:
        try:
            os.remove(file_path)
        except OSError as e:
            logger.warning("Error removing orphaned upload %s: %s", file_path, e)
        raise
    logger.info("Upload accepted: %s -> %s", file.filename, doc.document_id)
    return {
        "success": True,
        "message": "Document uploaded and processed successfully",
        "documentId": doc.document_id,
        "filename": doc.filename,
        "wordCount": doc.word_count,
        "charCount": doc.char_count,
    }


@router.get("/documents")
async def get_documents(request: Request, user: User = Depends(get_current_user)):
    docs = request.app.state.documents.list(user.id)
    return {"success": True, "documents": [document_to_dict(d) for d in docs]}


@router.get("/documents/{document_id}")
async def get_document(document_id: str, request: Request, user: User = Depends(get_current_user)):
    doc = request.app.state.documents.get(document_id, user.id)
    if not doc:
        raise DocumentNotFound()
    return {"success": True, "document": document_to_dict(doc, include_text=True)}


@router.delete("/documents/{document_id}")
async def delete_document(document_id: str, request: Request, user: User = Depends(get_current_user)):
    if not request.app.state.documents.delete(document_id, user.id):
        raise DocumentNotFound()
    request.app.state.chat.clear_history(document_id, user.id)
    return {"success": True, "message": "Document deleted"}


# -------------------------------------------------------------------
# Chat
# -------------------------------------------------------------------
@router.post("/chat")
async def ask(request: Request, user: User = Depends(get_current_user)):
    data = await read_json(request)
    document_id = required_str(data, "documentId")
    question = required_str(data, "question", strip=False)
    answer = await run_in_threadpool(request.app.state.chat.answer_question, document_id, question, user.id)
    return {"success": True, "answer": answer.text, "tokensUsed": answer.tokens_used}


@router.get("/chat/{document_id}")
async def get_history(document_id: str, request: Request, user: User = Depends(get_current_user)):
    turns = request.app.state.chat.get_history(document_id, user.id)
    return {"success": True, "history": [turn_to_dict(t) for t in turns]}


@router.post("/chat/clear/{document_id}")
async def clear_history(document_id: str, request: Request, user: User = Depends(get_current_user)):
    request.app.state.chat.clear_history(document_id, user.id)
    return {"success": True, "message": "Conversation history cleared"}
