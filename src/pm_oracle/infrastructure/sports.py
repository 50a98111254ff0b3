"""Match result: did the team win its most recent finished match?"""

import logging

import httpx

from src.pm_oracle.domain.models import OracleResult
from src.pm_oracle.infrastructure.http import ORACLE_ERRORS, get_json

logger = logging.getLogger(__name__)

# "3" is TheSportsDB's public test key.
SPORTSDB_BASE_URL = "https://www.thesportsdb.com/api/v1/json/3"


async def check_sports_match(
    client: httpx.AsyncClient, team: str
) -> OracleResult | None:
    if not team:
        return None
    try:
        found = await get_json(
            client, f"{SPORTSDB_BASE_URL}/searchteams.php", params={"t": team}
        )
        team_id = str(found["teams"][0]["idTeam"])

        events = await get_json(
            client, f"{SPORTSDB_BASE_URL}/eventslast.php", params={"id": team_id}
        )
        finished = [
            e
            for e in (events.get("results") or [])
            if e.get("intHomeScore") is not None and e.get("intAwayScore") is not None
        ]
        if not finished:
            logger.warning("TheSportsDB: no finished match for %s", team)
            return None
        last = finished[0]
        home_goals = int(last["intHomeScore"])
        away_goals = int(last["intAwayScore"])
        is_home = str(last["idHomeTeam"]) == team_id
    except ORACLE_ERRORS as exc:
        logger.warning("TheSportsDB check for %s failed: %s", team, exc)
        return None

    own, other = (home_goals, away_goals) if is_home else (away_goals, home_goals)
    return OracleResult(
        outcome=own > other,
        value=float(own),
        source=(
            f"TheSportsDB: {last.get('strEvent', team)} "
            f"{home_goals}-{away_goals} on {last.get('dateEvent', '?')} "
            f"({SPORTSDB_BASE_URL}/eventslast.php?id={team_id})"
        ),
    )
