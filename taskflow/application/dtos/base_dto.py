# taskflow/application/dtos/base_dto.py

from pydantic import BaseModel, ConfigDict


class CustomBaseModel(BaseModel):
    """Base for every DTO: strips strings and reads ORM/domain attributes."""
    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)
