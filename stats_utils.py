"""Read-side helpers for stored game stats (game view, KDA trends)."""

import pandas as pd

from store import SUMMARY_STAT_TYPES

KDA_COLS = ['date', 'kills', 'deaths', 'assists', 'game_id']


def split_game_stats(rows):
    """Separate the end-of-game summary document from the simple stats.

    Returns:
        Tuple (summary_row_or_None, other_rows).
    """
    summary = None
    others = []
    for row in rows:
        if row.get('stat_type') in SUMMARY_STAT_TYPES:
            if summary is None:
                summary = row
            continue
        others.append(row)
    return summary, others


def parse_riot_id(summoner_name):
    """Split "GameName#TagLine" into (game_name, tag_line or None)."""
    if '#' in summoner_name:
        game_name, tag_line = summoner_name.split('#', 1)
        return game_name, tag_line
    return summoner_name, None


def player_matches(player, summoner_name):
    """True if a summary's player entry belongs to the given Riot id.

    Matches on name+tag when a tag is given, on name with a blank tag when
    it isn't, or on the full summonerName string.
    """
    game_name, tag_line = parse_riot_id(summoner_name)
    riot_name = player.get('riotIdGameName')
    riot_tag = player.get('riotIdTagLine')

    if tag_line and riot_name == game_name and riot_tag == tag_line:
        return True
    if not tag_line and riot_name == game_name and (not riot_tag or not str(riot_tag).strip()):
        return True
    return player.get('summonerName') == summoner_name


def _find_player_stats(summary, summoner_name):
    for team in summary.get('teams') or []:
        for player in team.get('players') or []:
            if player_matches(player, summoner_name) and player.get('stats'):
                return player['stats']
    return None


def kda_points(rows, summoner_name):
    """Build a date-sorted DataFrame of kills/deaths/assists for one player.

    Args:
        rows: Summary stat rows (id, timestamp, stat_value).
        summoner_name: Riot id, with or without "#Tag".

    Returns:
        DataFrame with KDA_COLS; empty when the player never appears.
    """
    points = []
    for row in rows:
        summary = row.get('stat_value')
        if not isinstance(summary, dict) or not summary.get('teams'):
            continue
        if not row.get('timestamp'):
            continue
        stats = _find_player_stats(summary, summoner_name)
        if stats is None:
            continue
        points.append({
            'date':    row['timestamp'],
            'kills':   stats.get('CHAMPIONS_KILLED') or 0,
            'deaths':  stats.get('NUM_DEATHS') or 0,
            'assists': stats.get('ASSISTS') or 0,
            'game_id': row.get('id'),
        })

    df = pd.DataFrame(points, columns=KDA_COLS)
    if df.empty:
        return df
    df['date'] = pd.to_datetime(df['date'], utc=True, format='ISO8601')
    return df.sort_values('date', kind='stable').reset_index(drop=True)


def kda_summary(df):
    """Averages and overall KDA ratio, (kills + assists) / max(deaths, 1)."""
    if df.empty:
        return {'games': 0, 'avg_kills': 0.0, 'avg_deaths': 0.0, 'avg_assists': 0.0, 'kda': 0.0}
    kills, deaths, assists = df['kills'].sum(), df['deaths'].sum(), df['assists'].sum()
    return {
        'games':       int(len(df)),
        'avg_kills':   round(float(df['kills'].mean()), 2),
        'avg_deaths':  round(float(df['deaths'].mean()), 2),
        'avg_assists': round(float(df['assists'].mean()), 2),
        'kda':         round(float(kills + assists) / max(int(deaths), 1), 2),
    }


def kda_trends(rows, summoner_name):
    """JSON-ready KDA trend for the API: per-game points plus a summary."""
    df = kda_points(rows, summoner_name)
    points = [
        {
            'date':    r['date'].strftime('%Y-%m-%dT%H:%M:%SZ'),
            'kills':   int(r['kills']),
            'deaths':  int(r['deaths']),
            'assists': int(r['assists']),
            'game_id': r['game_id'],
        }
        for r in df.to_dict('records')
    ]
    return {'summoner_name': summoner_name, 'points': points, 'summary': kda_summary(df)}
