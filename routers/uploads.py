from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pymongo.database import Database

from database import get_db
from schemas import UploadRequest
from security import require_admin
from services.uploads import ImageStore

router = APIRouter(prefix="/uploads")


def get_image_store(db: Database = Depends(get_db)) -> ImageStore:
    return ImageStore(db)


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def upload_image(payload: UploadRequest, store: ImageStore = Depends(get_image_store)):
    return store.upload(payload.file_name, payload.content, payload.content_type)


# Public
@router.get("/{file_id}")
def download_image(file_id: str, store: ImageStore = Depends(get_image_store)):
    data, content_type = store.open(file_id)
    return Response(content=data, media_type=content_type)


@router.delete("/{file_id}", dependencies=[Depends(require_admin)])
def delete_image(file_id: str, store: ImageStore = Depends(get_image_store)):
    store.delete(file_id)
    return {"file_id": file_id, "deleted": True}
