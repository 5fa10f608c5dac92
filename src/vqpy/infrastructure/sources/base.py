"""
Validated options shared by all frame sources.
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

class SourceConfig(BaseModel):
    """Validated configuration for video sources"""
    buffer_size: int = Field(3, ge=1, le=120, description="OpenCV buffer size")
    target_width: Optional[int] = Field(None, gt=0, description="Target width in pixels")
    target_height: Optional[int] = Field(None, gt=0, description="Target height in pixels")
    fps: float = Field(30.0, gt=0, description="Frame rate assumed for image sequences")
    max_retries: int = Field(500, ge=0, description="Reconnection attempts for network streams")

    @field_validator('target_width', 'target_height')
    @classmethod
    def validate_resolution(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v % 2 != 0:
            raise ValueError('Resolution must be even number for video encoding')
        return v

    @model_validator(mode='after')
    def validate_resize_pair(self) -> 'SourceConfig':
        if (self.target_width is None) != (self.target_height is None):
            raise ValueError('target_width and target_height must be set together')
        return self
