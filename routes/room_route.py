from fastapi import APIRouter, Request

router = APIRouter(prefix="/api")


@router.get("/rooms")
async def list_rooms(request: Request):
	"""Return the configured room catalog in display order."""
	return {"rooms": list(request.app.state.settings.rooms)}
