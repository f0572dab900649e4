import logging
from datetime import date
from typing import Annotated, Any, Literal

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from engagement_analytics.api.dependencies import HandlerDep, lifespan
from engagement_analytics.config import settings
from engagement_analytics.dto import (
    ActiveUsersResponse,
    AttributeUsersQuery,
    CacheOperationResponse,
    CacheStatsResponse,
    ChannelPairingResponse,
    ConnectionsResponse,
    DateRangeQuery,
    DrilldownQueryParams,
    EngagementStatsResponse,
    HealthCheckResponse,
    MagicIntroPairingsResponse,
    MagicIntrosResponse,
    MatchEngagementResponse,
    MemberListResponse,
    MentorStatsResponse,
    MessageStatsResponse,
    PaginatedUsersResponse,
    SkillsStatsResponse,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

DatesQuery = Annotated[DateRangeQuery, Query()]

app = FastAPI(
    title="Engagement Analytics API",
    description="Community engagement analytics over a REST backend and a conversation store",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Engagement Analytics API",
        "version": "0.1.0",
        "description": "Community engagement analytics over a REST backend and a conversation store",
        "endpoints": {
            "engagement": "/communities/{id}/engagement",
            "cache": "/cache/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


@app.get("/communities/{community_id}/engagement", response_model=EngagementStatsResponse)
async def engagement(community_id: int, dates: DatesQuery, handler: HandlerDep) -> EngagementStatsResponse:
    """Headline engagement metrics of a community."""
    return await handler.get_engagement(community_id, dates)


@app.get("/communities/{community_id}/users/by-attribute", response_model=MemberListResponse)
async def users_by_attribute(
    community_id: int,
    query: Annotated[AttributeUsersQuery, Query()],
    handler: HandlerDep,
) -> MemberListResponse:
    """Members carrying an attribute value."""
    return await handler.get_users_by_attribute(community_id, query)


@app.get("/communities/{community_id}/drilldown", response_model=PaginatedUsersResponse)
async def drilldown(
    community_id: int,
    query: Annotated[DrilldownQueryParams, Query()],
    handler: HandlerDep,
) -> PaginatedUsersResponse:
    """One page of the members behind a chart value."""
    return await handler.get_drilldown(community_id, query)


@app.get("/communities/{community_id}/magic-intros", response_model=MagicIntrosResponse)
async def magic_intros(community_id: int, dates: DatesQuery, handler: HandlerDep) -> MagicIntrosResponse:
    """Direct intros grouped by UTC date, newest first."""
    return await handler.get_magic_intros(community_id, dates)


@app.get("/communities/{community_id}/magic-intros/{day}", response_model=MagicIntroPairingsResponse)
async def magic_intro_pairings(
    community_id: int,
    day: date,
    dates: DatesQuery,
    handler: HandlerDep,
) -> MagicIntroPairingsResponse:
    """Unique direct-intro pairings of one day."""
    return await handler.get_magic_intro_pairings(community_id, day, dates)


@app.get("/communities/{community_id}/connections", response_model=ConnectionsResponse)
async def connections(community_id: int, dates: DatesQuery, handler: HandlerDep) -> ConnectionsResponse:
    """Member-to-member connections."""
    return await handler.get_connections(community_id, dates)


@app.get("/communities/{community_id}/connections/{user_id}", response_model=MemberListResponse)
async def match_partners(
    community_id: int,
    user_id: int,
    dates: DatesQuery,
    handler: HandlerDep,
) -> MemberListResponse:
    """Members connected to one user."""
    return await handler.get_match_partners(community_id, user_id, dates)


@app.get("/communities/{community_id}/match-engagement", response_model=MatchEngagementResponse)
async def match_engagement(community_id: int, dates: DatesQuery, handler: HandlerDep) -> MatchEngagementResponse:
    """Engagement per match category."""
    return await handler.get_match_engagement(community_id, dates)


@app.get("/communities/{community_id}/channel-pairing", response_model=ChannelPairingResponse)
async def channel_pairing(community_id: int, dates: DatesQuery, handler: HandlerDep) -> ChannelPairingResponse:
    """Group pairing counts."""
    return await handler.get_channel_pairing(community_id, dates)


@app.get("/communities/{community_id}/mentors/{kind}", response_model=MemberListResponse)
async def mentors(community_id: int, kind: Literal["can", "want"], handler: HandlerDep) -> MemberListResponse:
    """Members who can mentor (can) or want a mentor (want)."""
    return await handler.get_mentors(community_id, kind)


@app.get("/communities/{community_id}/mentor-stats", response_model=MentorStatsResponse)
async def mentor_stats(community_id: int, handler: HandlerDep) -> MentorStatsResponse:
    """Mentor and mentee counts."""
    return await handler.get_mentor_stats(community_id)


@app.get("/communities/{community_id}/skills-stats", response_model=SkillsStatsResponse)
async def skills_stats(community_id: int, handler: HandlerDep) -> SkillsStatsResponse:
    """Distinct skills, members with skills and mentor counts."""
    return await handler.get_skills_stats(community_id)


@app.get("/communities/{community_id}/active-users", response_model=ActiveUsersResponse)
async def active_users(community_id: int, dates: DatesQuery, handler: HandlerDep) -> ActiveUsersResponse:
    """Daily and weekly active users at the end of the range."""
    return await handler.get_active_users(community_id, dates)


@app.get("/communities/{community_id}/messages", response_model=MessageStatsResponse)
async def messages(community_id: int, dates: DatesQuery, handler: HandlerDep) -> MessageStatsResponse:
    """Messages sent and platform-started chats."""
    return await handler.get_messages(community_id, dates)


@app.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(handler: HandlerDep) -> CacheStatsResponse:
    """Result cache statistics."""
    return await handler.get_cache_stats()


@app.post("/cache/sweep", response_model=CacheOperationResponse)
async def sweep_cache(handler: HandlerDep) -> CacheOperationResponse:
    """Discard expired cache entries."""
    return await handler.sweep_cache()


@app.delete("/cache", response_model=CacheOperationResponse)
async def clear_cache(handler: HandlerDep) -> CacheOperationResponse:
    """Clear every cached result."""
    return await handler.clear_cache()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "engagement_analytics.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
