from app.schemas.common import APIResponse, Pagination, ok, paginate
from app.schemas.family import FamilyCreate, FamilyResponse, FamilyUpdate, RSVPSubmit
from app.schemas.wedding import WeddingCreate, WeddingResponse, WeddingUpdate
