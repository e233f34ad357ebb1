"""
j-archive.com scraper.

Fetches season listings and game pages with requests and parses them with
BeautifulSoup into FetchedGame models. Network and HTTP errors are logged
and surface as None / empty results; callers decide how to report them.

Page layout relied on:
- /listseasons.php          links "showseason.php?season=N"
- /showseason.php?season=N  links "showgame.php?game_id=ID", text "#9428, aired 2025-11-05"
- /showgame.php?game_id=ID  #game_title, #jeopardy_round, #double_jeopardy_round,
                            #final_jeopardy_round, clues "clue_{J|DJ}_{col}_{row}"
                            with responses in "{clue_id}_r .correct_response"
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from core.config import settings
from models import Difficulty, KnowledgeCategory, Round
from schemas import FetchedCategory, FetchedGame, QuestionRecord

logger = logging.getLogger(__name__)

ANSWER_NOT_FOUND = "[Answer not found]"
CATEGORIES_PER_ROUND = 6
CLUES_PER_CATEGORY = 5

ROUND_SELECTORS = (
    (Round.SINGLE, "#jeopardy_round"),
    (Round.DOUBLE, "#double_jeopardy_round"),
    (Round.FINAL, "#final_jeopardy_round"),
)

KNOWLEDGE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (KnowledgeCategory.GEOGRAPHY_AND_HISTORY, (
        "history", "geography", "world", "capital", "president", "war",
        "country", "nation", "state", "city", "ancient", "century",
    )),
    (KnowledgeCategory.ENTERTAINMENT, (
        "movie", "film", "tv", "television", "actor", "music", "song",
        "singer", "band", "celebrity", "hollywood", "broadway",
    )),
    (KnowledgeCategory.ARTS_AND_LITERATURE, (
        "art", "literature", "book", "author", "poet", "novel", "painting",
        "sculpture", "museum", "literary",
    )),
    (KnowledgeCategory.SCIENCE_AND_NATURE, (
        "science", "nature", "animal", "biology", "physics", "chemistry",
        "math", "medicine", "health", "space", "planet", "element",
    )),
    (KnowledgeCategory.SPORTS_AND_LEISURE, (
        "sport", "game", "olympic", "athlete", "team", "baseball", "football",
        "basketball", "hockey", "soccer", "golf", "tennis",
    )),
)

MONTHS = {
    "January": 1, "February": 2, "March": 3, "April": 4, "May": 5, "June": 6,
    "July": 7, "August": 8, "September": 9, "October": 10, "November": 11, "December": 12,
}

DATE_FORMAT_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TITLE_DATE_RE = re.compile(r"(\w+day),?\s+(\w+)\s+(\d+),?\s+(\d{4})")
SEASON_HREF_RE = re.compile(r"season=(\d+)")
GAME_HREF_RE = re.compile(r"game_id=(\d+)")
AIRED_RE = re.compile(r"aired\s+(\d{4}-\d{2}-\d{2})")
TAPED_RE = re.compile(r"Taped\s+(\d{4}-\d{2}-\d{2})")
SHOW_NUMBER_RE = re.compile(r"#(\d+)")


@dataclass
class SeasonGame:
    game_id: str
    show_number: str
    air_date: str
    taped_date: Optional[str]
    url: str


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def classify_knowledge_category(category_name: str) -> str:
    lower = category_name.lower()
    for knowledge_category, keywords in KNOWLEDGE_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return knowledge_category
    return KnowledgeCategory.GENERAL_KNOWLEDGE


def classify_difficulty(value: int, round_: str) -> str:
    """Difficulty from dollar value; Final Jeopardy is always HARD."""
    if round_ == Round.FINAL:
        return Difficulty.HARD
    if round_ == Round.DOUBLE:
        # $400 .. $2000
        if value <= 800:
            return Difficulty.EASY
        if value <= 1200:
            return Difficulty.MEDIUM
        return Difficulty.HARD
    # $200 .. $1000
    if value <= 400:
        return Difficulty.EASY
    if value <= 600:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def is_valid_date_format(value: Optional[str]) -> bool:
    if not value or not DATE_FORMAT_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_future_date(value: str) -> bool:
    return value > datetime.now(timezone.utc).date().isoformat()


def extract_air_date_from_title(title: str) -> Optional[str]:
    """``"Show #9428 - Wednesday, November 5, 2025"`` -> ``"2025-11-05"``."""
    match = TITLE_DATE_RE.search(title or "")
    if not match:
        return None
    month = MONTHS.get(match.group(2), 1)
    return f"{match.group(4)}-{month:02d}-{int(match.group(3)):02d}"


def extract_show_number(title: str) -> Optional[int]:
    match = SHOW_NUMBER_RE.search(title or "")
    return int(match.group(1)) if match else None


def _text(element) -> str:
    return element.get_text().strip() if element is not None else ""


def _build_question(text: str, answer: str, value: int, category: str, round_: str) -> QuestionRecord:
    return QuestionRecord(
        question=text,
        answer=answer or ANSWER_NOT_FOUND,
        value=value,
        category=category,
        round=round_,
        difficulty=classify_difficulty(value, round_),
        knowledge_category=classify_knowledge_category(category),
    )


def parse_round(soup: BeautifulSoup, selector: str, round_: str) -> Tuple[List[FetchedCategory], List[QuestionRecord]]:
    round_element = soup.select_one(selector)
    if round_element is None:
        return [], []

    if round_ == Round.FINAL:
        category_name = _text(round_element.select_one(".category_name")) or "Final Jeopardy"
        clue_text = _text(round_element.select_one(".clue_text"))
        if not clue_text:
            return [], []
        answer = _text(round_element.select_one(".correct_response"))
        question = _build_question(clue_text, answer, 0, category_name, Round.FINAL)
        category = FetchedCategory(name=category_name, round="final", questions=[question])
        return [category], [question]

    prefix = "DJ" if round_ == Round.DOUBLE else "J"
    base_value = 400 if round_ == Round.DOUBLE else 200
    category_names = [_text(el) for el in round_element.select(".category_name")]

    categories: Dict[str, FetchedCategory] = {}
    questions: List[QuestionRecord] = []

    for column in range(1, CATEGORIES_PER_ROUND + 1):
        name = category_names[column - 1] if column <= len(category_names) and category_names[column - 1] else f"Category {column}"
        category = categories.setdefault(name, FetchedCategory(name=name, round=round_.lower()))

        for row in range(1, CLUES_PER_CATEGORY + 1):
            clue_id = f"clue_{prefix}_{column}_{row}"
            clue_text = _text(soup.find(id=clue_id))
            if not clue_text:
                continue
            response = soup.find(id=f"{clue_id}_r")
            answer = _text(response.select_one(".correct_response")) if response is not None else ""
            question = _build_question(clue_text, answer, base_value * row, name, round_)
            questions.append(question)
            category.questions.append(question)

    logger.debug(f"Parsed {len(questions)} clues in {round_} round")
    return [c for c in categories.values() if c.questions], questions


def parse_game_html(html: str, game_id: str) -> FetchedGame:
    soup = BeautifulSoup(html, "html.parser")
    title = _text(soup.select_one("#game_title")) or _text(soup.find("h1"))

    categories: List[FetchedCategory] = []
    questions: List[QuestionRecord] = []
    for round_, selector in ROUND_SELECTORS:
        round_categories, round_questions = parse_round(soup, selector, round_)
        categories.extend(round_categories)
        questions.extend(round_questions)

    return FetchedGame(
        game_id=str(game_id),
        show_number=extract_show_number(title),
        air_date=extract_air_date_from_title(title),
        title=title,
        categories=categories,
        questions=questions,
        question_count=len(questions),
    )


def parse_season_listing(html: str, base_url: str) -> List[SeasonGame]:
    soup = BeautifulSoup(html, "html.parser")
    games: List[SeasonGame] = []
    for link in soup.find_all("a", href=True):
        href = link["href"]
        game_match = GAME_HREF_RE.search(href)
        if not game_match:
            continue
        text = link.get_text().strip()
        aired = AIRED_RE.search(text)
        if not aired:
            continue
        show = SHOW_NUMBER_RE.search(text)
        taped = TAPED_RE.search(link.get("title") or "")
        games.append(SeasonGame(
            game_id=game_match.group(1),
            show_number=show.group(1) if show else "",
            air_date=aired.group(1),
            taped_date=taped.group(1) if taped else None,
            url=href if href.startswith("http") else f"{base_url}/{href.lstrip('/')}",
        ))
    return games


def parse_season_numbers(html: str) -> List[int]:
    soup = BeautifulSoup(html, "html.parser")
    seasons = set()
    for link in soup.find_all("a", href=True):
        if "showseason.php?season=" in link["href"]:
            match = SEASON_HREF_RE.search(link["href"])
            if match:
                seasons.add(int(match.group(1)))
    return sorted(seasons, reverse=True)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class ArchiveClient:
    """Thin requests wrapper around the archive pages."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        max_seasons_to_search: Optional[int] = None,
    ):
        self.base_url = (base_url or settings.ARCHIVE_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ARCHIVE_TIMEOUT_S
        self.max_seasons_to_search = max_seasons_to_search or settings.ARCHIVE_MAX_SEASONS_TO_SEARCH
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": settings.ARCHIVE_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        })

    def _get(self, path: str) -> Optional[str]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            logger.error(f"Archive request failed for {url}: {e}")
            return None

    def discover_seasons(self) -> List[int]:
        """All season numbers, newest first."""
        html = self._get("/listseasons.php")
        return parse_season_numbers(html) if html else []

    def get_current_season(self) -> Optional[int]:
        html = self._get("/")
        if html:
            soup = BeautifulSoup(html, "html.parser")
            for link in soup.find_all("a", href=True):
                if "current season" in link.get_text().lower() or "season=" in link["href"]:
                    match = SEASON_HREF_RE.search(link["href"])
                    if match:
                        return int(match.group(1))
        seasons = self.discover_seasons()
        return seasons[0] if seasons else None

    def get_season_games(self, season: int) -> List[SeasonGame]:
        html = self._get(f"/showseason.php?season={season}")
        return parse_season_listing(html, self.base_url) if html else []

    def find_game_by_date(self, target_date: str) -> Tuple[Optional[SeasonGame], Optional[int]]:
        """
        Search seasons backwards from the current one.

        Returns (game, season). Stops after max_seasons_to_search seasons or
        once a season's oldest game predates the target year by more than one.
        """
        target_year = int(target_date.split("-")[0])
        current = self.get_current_season()
        if not current:
            logger.error("Could not determine current season")
            return None, None

        searched = 0
        season = current
        while season > 0 and searched < self.max_seasons_to_search:
            games = self.get_season_games(season)
            for game in games:
                if game.air_date == target_date:
                    logger.info(f"Found game {game.game_id} for {target_date} in season {season}")
                    return game, season

            if games:
                oldest_year = int(min(g.air_date for g in games).split("-")[0])
                if oldest_year < target_year - 1:
                    break

            searched += 1
            season -= 1

        logger.info(f"No game found for {target_date} after searching {searched} seasons")
        return None, current

    def parse_game_by_id(self, game_id: str) -> Optional[FetchedGame]:
        html = self._get(f"/showgame.php?game_id={game_id}")
        if html is None:
            return None
        return parse_game_html(html, game_id)

    def parse_game_by_date(self, target_date: str) -> Optional[FetchedGame]:
        game_info, season = self.find_game_by_date(target_date)
        if game_info is None:
            return None
        game = self.parse_game_by_id(game_info.game_id)
        if game is None:
            return None
        if not game.air_date:
            game.air_date = target_date
        game.season = season
        return game
