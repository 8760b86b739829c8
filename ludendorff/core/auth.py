from fastapi import Depends, HTTPException, status
from starlette.requests import Request

from ludendorff.services import Services, get_services
from ludendorff.users.errors import InvalidTokenError
from ludendorff.users.identity import VerifiedToken


async def get_current_caller(request: Request, services: Services = Depends(get_services)) -> VerifiedToken:
    auth_header = request.headers.get("authorization", "")
    token = auth_header.replace("Bearer ", "") if auth_header.startswith("Bearer ") else ""
    try:
        return await services.identity.verify_token(token)
    except InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid identity token")
