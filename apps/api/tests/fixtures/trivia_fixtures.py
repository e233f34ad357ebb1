"""Row factories, fetched-game builders and archive HTML samples."""
from datetime import date
from typing import List, Optional
from uuid import uuid4

from models import Category, Question, Round, User, UserRole
from schemas import FetchedGame, QuestionRecord


def make_user(db, role: str = UserRole.USER, **kwargs) -> User:
    user = User(
        email=kwargs.pop("email", f"user_{uuid4().hex[:8]}@example.com"),
        role=role,
        **kwargs,
    )
    db.add(user)
    db.commit()
    return user


def make_question(
    db,
    text: str = "This planet is known as the Red Planet",
    answer: str = "Mars",
    category: str = "SCIENCE",
    air_date: Optional[date] = date(2024, 1, 15),
    round_: str = Round.SINGLE,
    value: int = 200,
    **kwargs,
) -> Question:
    cat = db.query(Category).filter(Category.name == category).first()
    if cat is None:
        cat = Category(name=category)
        db.add(cat)
        db.flush()
    question = Question(
        question=text,
        answer=answer,
        value=value,
        category_id=cat.id,
        air_date=air_date,
        round=round_,
        is_double_jeopardy=round_ == Round.DOUBLE,
        **kwargs,
    )
    db.add(question)
    db.commit()
    return question


def make_fetched_game(game_id: str = "9001", air_date: Optional[str] = "2024-03-01", clues: int = 3) -> FetchedGame:
    questions: List[QuestionRecord] = [
        QuestionRecord(
            question=f"Clue {i} for game {game_id}",
            answer=f"Answer {i}",
            value=200 * i,
            category="POTPOURRI",
            round=Round.SINGLE,
        )
        for i in range(1, clues + 1)
    ]
    questions.append(QuestionRecord(
        question=f"Final clue for game {game_id}",
        answer="Final answer",
        value=0,
        category="WORLD CAPITALS",
        round=Round.FINAL,
    ))
    return FetchedGame(
        game_id=game_id,
        air_date=air_date,
        title=f"Show #{game_id}",
        season=41,
        questions=questions,
        question_count=len(questions),
    )


GAME_HTML = """
<html><body>
<div id="game_title"><h1>Show #9428 - Wednesday, November 5, 2025</h1></div>
<div id="jeopardy_round">
  <table>
    <tr>
      <td class="category_name">SCIENCE</td>
      <td class="category_name">WORLD HISTORY</td>
      <td class="category_name"></td>
    </tr>
  </table>
  <td id="clue_J_1_1" class="clue_text">This planet is known as the Red Planet</td>
  <div id="clue_J_1_1_r"><em class="correct_response">Mars</em></div>
  <td id="clue_J_1_3" class="clue_text">H2O is the formula for this</td>
  <div id="clue_J_1_3_r"><em class="correct_response">water</em></div>
  <td id="clue_J_2_1" class="clue_text">He crossed the Rubicon</td>
  <td id="clue_J_3_2" class="clue_text">An unnamed column clue</td>
  <div id="clue_J_3_2_r"><em class="correct_response">something</em></div>
</div>
<div id="double_jeopardy_round">
  <table>
    <tr><td class="category_name">MOVIE QUOTES</td></tr>
  </table>
  <td id="clue_DJ_1_2" class="clue_text">"Here's looking at you, kid"</td>
  <div id="clue_DJ_1_2_r"><em class="correct_response">Casablanca</em></div>
  <td id="clue_DJ_1_5" class="clue_text">"Rosebud"</td>
  <div id="clue_DJ_1_5_r"><em class="correct_response">Citizen Kane</em></div>
</div>
<div id="final_jeopardy_round">
  <td class="category_name">WORLD CAPITALS</td>
  <td id="clue_FJ" class="clue_text">This capital sits on the Seine</td>
  <div id="clue_FJ_r"><em class="correct_response">Paris</em></div>
</div>
</body></html>
"""

SEASON_LIST_HTML = """
<html><body>
<a href="showseason.php?season=42">Season 42</a>
<a href="showseason.php?season=41">Season 41</a>
<a href="showseason.php?season=40">Season 40</a>
<a href="/about.php">About</a>
</body></html>
"""

HOME_HTML = """
<html><body><a href="showseason.php?season=42">current season</a></body></html>
"""

SEASON_42_HTML = """
<html><body>
<a href="showgame.php?game_id=9302" title="Taped 2025-09-10">#9428, aired 2025-11-05</a>
<a href="showgame.php?game_id=9301">#9427, aired 2025-11-04</a>
<a href="showplayer.php?player_id=1">Some Player</a>
</body></html>
"""

SEASON_41_HTML = """
<html><body>
<a href="showgame.php?game_id=9100">#9300, aired 2025-05-02</a>
<a href="showgame.php?game_id=9000">#9200, aired 2024-09-09</a>
</body></html>
"""
