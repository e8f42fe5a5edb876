from pydantic import BaseModel


class HistoryResponse(BaseModel):
    id: str
    pill_name: str
    confidence: float
    color: str | None = None
    shape: str | None = None
    imprint: str | None = None
    description: str | None = None
    usage: str | None = None
    warnings: list[str] = []
    created_at: str

    model_config = {"from_attributes": True}


class HistoryStats(BaseModel):
    total: int
    unique_pills: int
    average_confidence: float
    last_7_days: int
