from __future__ import annotations

STRINGS: dict[str, dict[str, str]] = {
    "welcome": {
        "en": "Hi, {name}! Welcome to Math Camp 🏕️\nPick an activity:",
        "uk": "Привіт, {name}! Вітаємо в Математичному таборі 🏕️\nОбери заняття:",
    },
    "choose_activity": {"en": "Pick an activity:", "uk": "Обери заняття:"},
    "choose_difficulty": {"en": "Choose difficulty:", "uk": "Обери складність:"},
    "difficulty_set": {"en": "Difficulty: {difficulty}", "uk": "Складність: {difficulty}"},
    "count_set": {"en": "Questions per game: {count}", "uk": "Питань у грі: {count}"},
    "count_usage": {
        "en": "Usage: /count N (N from 1 to {max})",
        "uk": "Використання: /count N (N від 1 до {max})",
    },
    "activity_off": {"en": "This activity is not available yet.", "uk": "Це заняття ще недоступне."},
    "question_header": {"en": "Question {n} of {total}", "uk": "Питання {n} з {total}"},
    "type_answer": {"en": "Type your answer.", "uk": "Напиши відповідь."},
    "type_fact_family": {
        "en": "Type the four missing numbers in order, e.g. 8, 8, 5, 3",
        "uk": "Напиши чотири пропущені числа по порядку, напр. 8, 8, 5, 3",
    },
    "correct": {"en": "✅ Correct!", "uk": "✅ Правильно!"},
    "wrong": {"en": "❌ Not quite. The answer is {answer}.", "uk": "❌ Не зовсім. Відповідь: {answer}."},
    "invalid_number": {"en": "Please answer with a number.", "uk": "Відповідай числом, будь ласка."},
    "invalid_symbol": {"en": "Please choose >, < or =.", "uk": "Обери >, < або =."},
    "invalid_fact_family": {"en": "I need four numbers.", "uk": "Потрібно чотири числа."},
    "hint_none": {"en": "No hint for this one. You can do it!", "uk": "Тут без підказки. У тебе вийде!"},
    "hint": {"en": "💡 {hint}", "uk": "💡 {hint}"},
    "session_complete": {
        "en": "🎉 Done! {correct} of {total} correct. Score: {score}%",
        "uk": "🎉 Готово! Правильно {correct} з {total}. Результат: {score}%",
    },
    "perfect": {"en": "💯 Perfect game!", "uk": "💯 Ідеальна гра!"},
    "achievement": {"en": "{icon} New badge: {name}", "uk": "{icon} Новий значок: {name}"},
    "empty_session": {"en": "No questions this time. Try again!", "uk": "Цього разу без питань. Спробуй ще!"},
    "stopped": {"en": "Game stopped.", "uk": "Гру зупинено."},
    "no_game": {"en": "No game in progress. Pick an activity:", "uk": "Гра не йде. Обери заняття:"},
    "why_unavailable": {
        "en": "Explanation unavailable right now.",
        "uk": "Пояснення зараз недоступне.",
    },
    "progress": {
        "en": (
            "📊 Problems: {total}\nCorrect: {correct} ({accuracy}%)\n"
            "Streak: {streak} (best {best})\nGames: {sessions}\nFavourite: {favorite}"
        ),
        "uk": (
            "📊 Задач: {total}\nПравильно: {correct} ({accuracy}%)\n"
            "Серія: {streak} (найкраща {best})\nІгор: {sessions}\nУлюблене: {favorite}"
        ),
    },
    "mastery_line": {"en": "{activity}: {level}%", "uk": "{activity}: {level}%"},
    "progress_reset": {"en": "Progress reset.", "uk": "Прогрес скинуто."},
    "btn_hint": {"en": "💡 Hint", "uk": "💡 Підказка"},
    "btn_why": {"en": "❓ Why", "uk": "❓ Чому"},
    "btn_play_again": {"en": "🔁 Play again", "uk": "🔁 Ще раз"},
    "btn_menu": {"en": "🏠 Activities", "uk": "🏠 Заняття"},
    "diff_easy": {"en": "Easy", "uk": "Легко"},
    "diff_medium": {"en": "Medium", "uk": "Середньо"},
    "diff_hard": {"en": "Hard", "uk": "Складно"},
    "act_addition": {"en": "➕ Addition", "uk": "➕ Додавання"},
    "act_subtraction": {"en": "➖ Subtraction", "uk": "➖ Віднімання"},
    "act_multiplication": {"en": "✖️ Multiplication", "uk": "✖️ Множення"},
    "act_division": {"en": "➗ Division", "uk": "➗ Ділення"},
    "act_comparison": {"en": "⚖️ Compare", "uk": "⚖️ Порівняння"},
    "act_fact-family": {"en": "🏠 Fact families", "uk": "🏠 Числові сімʼї"},
    "act_word-problem": {"en": "📖 Word problems", "uk": "📖 Задачі"},
    "act_counting": {"en": "🔢 Counting", "uk": "🔢 Лічба"},
    "act_counting-sequence": {"en": "🪜 Skip counting", "uk": "🪜 Лічба кроками"},
}

def t(key: str, lang: str) -> str:
    return STRINGS.get(key, {}).get(lang, STRINGS.get(key, {}).get("en", key))
