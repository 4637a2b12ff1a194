from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from engagement.core.principal import Principal
from engagement.schemas.upload import UploadResult
from engagement.services.storage import FileStorage
from engagement.api import deps

router = APIRouter()


@router.post("", response_model=UploadResult)
async def upload_file(
    file: UploadFile = File(...),
    project_id: Optional[int] = Form(default=None),
    principal: Principal = Depends(deps.get_principal),
    storage: FileStorage = Depends(deps.get_storage),
):
    """
    Upload a deliverable file. The returned URL goes into the ``files`` list
    of a deliverable when submitting a milestone.
    """
    url = await storage.store(file, project_id)
    return UploadResult(url=url, filename=file.filename)
