"""
Profile routes. Visibility is decided entirely by the profile policies.
"""
from fastapi import APIRouter, Depends
from typing import List, Optional

from ..auth import get_policy_context
from ..models.profile import Profile
from ..policies import PolicyContext, PolicyEngine, get_policy_engine
from ..responses import not_found
from ..schemas.profile import ProfileResponse

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("", response_model=List[ProfileResponse])
def list_profiles(
    is_admin: Optional[bool] = None,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    """Profiles visible to the caller; ``is_admin=false`` lists assignable clients."""
    query = engine.query(ctx, Profile)
    if is_admin is not None:
        query = query.filter(Profile.is_admin == is_admin)
    return query.order_by(Profile.email).all()


@router.get("/{profile_id}", response_model=ProfileResponse)
def get_profile(
    profile_id: str,
    ctx: PolicyContext = Depends(get_policy_context),
    engine: PolicyEngine = Depends(get_policy_engine),
):
    profile = engine.get(ctx, Profile, profile_id)
    if not profile:
        not_found("Profile")
    return profile
