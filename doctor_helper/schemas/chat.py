from pydantic import BaseModel
from typing import List, Optional


class ChatMessage(BaseModel):
    role: str = "user"
    content: Optional[str] = None


class HealthReportContext(BaseModel):
    title: Optional[str] = None
    reportType: Optional[str] = None
    riskLevel: Optional[str] = None
    summary: Optional[str] = None
    keyFindings: List[str] = []
    recommendations: List[str] = []


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = []
    image: Optional[str] = None  # data:<mime>;base64,<data>
    document: Optional[str] = None
    healthReport: Optional[HealthReportContext] = None

    @property
    def last_message(self) -> Optional[str]:
        return self.messages[-1].content if self.messages else None


class ChatResponse(BaseModel):
    response: str
    interactionType: str
    remaining: Optional[int] = None
    limit: Optional[int] = None
