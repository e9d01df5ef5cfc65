from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.fastapi import BaseContext

from gymbook.db.postgresql import get_db
from gymbook.security.identity import Identity, identity_from_claims
from gymbook.security.jwt import extract_token, verify_token


@dataclass
class Context(BaseContext):
    db: AsyncSession
    request: Optional[Request] = None
    response: Optional[Response] = None
    identity: Optional[Identity] = None


async def build_context(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Context:
    identity = None

    access_token = extract_token(request.headers)
    if access_token:
        payload = verify_token(access_token)
        identity = identity_from_claims(payload)

    return Context(db=db, request=request, response=response, identity=identity)
