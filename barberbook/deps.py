# barberbook/deps.py

from fastapi import HTTPException


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def require_self_or_admin(user: dict, barber_id: str):
    if user["role"] != "ADMIN" and user["id"] != barber_id:
        raise HTTPException(status_code=403, detail="Forbidden")
