"""
FastAPI dependencies exposing the per-application resources created in the
lifespan: database handle, repositories, configuration and OAuth client.
"""

from typing import Optional

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from api.config import APIConfig
from api.oauth import GitHubOAuthClient
from storage.repositories import Repositories
from utilities.errors import ServerError


def get_database(request: Request) -> AsyncIOMotorDatabase:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise ServerError("Database service not available")
    return database


def get_repositories(database: AsyncIOMotorDatabase = Depends(get_database)) -> Repositories:
    return Repositories(database)


def get_api_config(request: Request) -> APIConfig:
    return request.app.state.api_config


def get_oauth_client(request: Request) -> Optional[GitHubOAuthClient]:
    return request.app.state.oauth_client
