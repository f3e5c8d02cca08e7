"""Analytics utilities for derived football metrics."""

from .comparison import (
    ComparisonPlayer,
    PlayerMatchStats,
    compare_matches,
    empty_stats,
    merge_comparison,
)
from .frames import (
    DEFAULT_LEADERBOARD_GROUPS,
    build_player_leaderboards,
    comparison_to_dataframe,
    events_to_dataframe,
    player_stats_to_dataframe,
)
from .orchestrator import (
    MatchAnalysis,
    PlayerAdvancedStats,
    aggregate_match,
    aggregate_player_advanced_stats,
    aggregate_team_across_matches,
    analyse_events,
)
from .pass_profile import (
    PlayerPassProfile,
    build_pass_profiles,
    fetch_player_pass_profile,
    fetch_team_pass_profiles,
)
from .player_rating import AdvancedMetrics, PlayerRating, advanced_metrics, rate_player
from .player_stats import DerivedPlayerStats, aggregate_player_stats
from .set_piece_retention import SetPieceRetention, fetch_set_piece_retention, set_piece_retention
from .time_segmentation import (
    DayWorkStats,
    MatchEntryStats,
    collect_match_entry_stats,
    compute_day_work_stats,
    format_duration,
    segment_timestamps,
)
from .xg import Shot, XGResult, compute_xg

__all__ = [
    "ComparisonPlayer",
    "PlayerMatchStats",
    "compare_matches",
    "empty_stats",
    "merge_comparison",
    "DEFAULT_LEADERBOARD_GROUPS",
    "build_player_leaderboards",
    "comparison_to_dataframe",
    "events_to_dataframe",
    "player_stats_to_dataframe",
    "MatchAnalysis",
    "PlayerAdvancedStats",
    "aggregate_match",
    "aggregate_player_advanced_stats",
    "aggregate_team_across_matches",
    "analyse_events",
    "PlayerPassProfile",
    "build_pass_profiles",
    "fetch_player_pass_profile",
    "fetch_team_pass_profiles",
    "AdvancedMetrics",
    "PlayerRating",
    "advanced_metrics",
    "rate_player",
    "DerivedPlayerStats",
    "aggregate_player_stats",
    "SetPieceRetention",
    "fetch_set_piece_retention",
    "set_piece_retention",
    "DayWorkStats",
    "MatchEntryStats",
    "collect_match_entry_stats",
    "compute_day_work_stats",
    "format_duration",
    "segment_timestamps",
    "Shot",
    "XGResult",
    "compute_xg",
]
