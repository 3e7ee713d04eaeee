"""
Password hashing helpers.
"""
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

# argon2 is memory-hard; hashes carry their own salt and parameters.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


async def hash_password_async(password: str) -> str:
    """Hash off the event loop; argon2 deliberately burns CPU and memory."""
    return await run_in_threadpool(get_password_hash, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)
