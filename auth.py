from datetime import datetime, timedelta, timezone

import jwt

from errors import TokenExpired, TokenInvalid

JWT_ALG = "HS256"
TOKEN_TTL = timedelta(days=30)


class TokenIssuer:
    """Mints and checks the signed identity token handed out after verification."""

    def __init__(self, secret: str, algorithm: str = JWT_ALG, ttl: timedelta = TOKEN_TTL):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: str, name: str) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {"userId": user_id, "name": name, "iat": now}
        to_encode["exp"] = now + self.ttl
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict:
        try:
            data = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidTokenError:
            raise TokenInvalid()
        user_id = data.get("userId")
        if not user_id:
            raise TokenInvalid("Invalid token payload")
        return {"id": user_id, "name": data.get("name")}
