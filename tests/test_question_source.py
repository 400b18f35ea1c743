import pytest

from app.core.exceptions import QuestionSourceError
from app.models.interview import Difficulty, Question
from app.services.question_source import QuestionSource


async def test_bank_question_preferred_and_keeps_its_id(bank, question_source, ai):
    entry = bank.add("What is the difference between props and state?", Difficulty.EASY)

    question = await question_source.next_question(Difficulty.EASY, [])

    assert question.id == entry.id
    assert question.question == entry.question
    assert ai.generated == 0


async def test_asked_questions_are_not_repeated(bank, question_source):
    first = bank.add("What is the difference between props and state?", Difficulty.EASY)
    second = bank.add("What does useEffect do in React?", Difficulty.EASY)

    asked = [await question_source.next_question(Difficulty.EASY, [])]
    asked.append(await question_source.next_question(Difficulty.EASY, asked))

    assert {q.id for q in asked} == {first.id, second.id}


def test_eligible_matches_text_ignoring_case_and_spacing(bank, question_source):
    bank.add("What does  useEffect do in React?", Difficulty.EASY)
    bank.add("How does the Node.js event loop work?", Difficulty.MEDIUM)
    asked = [Question(question="what does useEffect do in react?", difficulty=Difficulty.EASY)]

    assert question_source.eligible(Difficulty.EASY, asked) == []
    assert len(question_source.eligible(Difficulty.MEDIUM, asked)) == 1


async def test_generator_used_when_bank_exhausted(bank, question_source, ai):
    bank.add("How does the Node.js event loop work?", Difficulty.MEDIUM)

    question = await question_source.next_question(Difficulty.HARD, [])

    assert question.difficulty == Difficulty.HARD
    assert question.question.startswith("Hard question number 1")
    assert ai.generated == 1


async def test_repeated_generations_give_up(bank):
    class Repeating:
        async def generate_question(self, difficulty, topic):
            return "Explain closures."

    source = QuestionSource(bank, Repeating(), generation_attempts=2)
    asked = [Question(question="Explain  closures.", difficulty=Difficulty.EASY)]

    with pytest.raises(QuestionSourceError):
        await source.next_question(Difficulty.EASY, asked)


async def test_unexpected_generator_errors_are_wrapped(bank):
    class Broken:
        async def generate_question(self, difficulty, topic):
            raise TimeoutError("slow model")

    source = QuestionSource(bank, Broken())
    with pytest.raises(QuestionSourceError):
        await source.next_question(Difficulty.MEDIUM, [])


def test_malformed_bank_documents_are_skipped(bank, db):
    db.collection("interviewQuestions").document("bad").set({"question": "No difficulty here"})
    db.collection("interviewQuestions").document("good").set(
        {"question": "What is a closure in JavaScript?", "difficulty": "Easy", "type": "text"}
    )

    entries = bank.load()

    assert [e.id for e in entries] == ["good"]


def test_remove_drops_entry_from_cache(bank):
    entry = bank.add("What is a closure in JavaScript?", Difficulty.EASY)
    bank.remove(entry.id)
    assert bank.entries == []
