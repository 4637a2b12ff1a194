from pydantic import BaseModel


class UploadResult(BaseModel):
    success: bool = True
    url: str
    filename: str
