from jose import jwt

ALGORITHM = "HS256"

def decode_jwt(token: str, secret: str, audience: str | None = None) -> dict:
    if audience:
        return jwt.decode(token, secret, algorithms=[ALGORITHM], audience=audience)
    return jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_aud": False})
