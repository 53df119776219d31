"""
Pydantic schemas for data validation and serialization.

Schemas:
    follower: Follower records, viewer flags, labels and paginated responses

Features:
    - Automatic data validation
    - Strict scalar types (a type mismatch fails the whole page decode)
    - Missing fields and nulls fall back to zero values

Usage:
    from schemas.follower import FollowerRecord, FollowersPage, Label, Viewer

Example:
    page = FollowersPage.model_validate_json(body)
    for follower in page.followers:
        print(follower.did, follower.handle)
"""

__all__ = [
    "FollowerRecord",
    "FollowersPage",
    "Label",
    "Viewer",
]
