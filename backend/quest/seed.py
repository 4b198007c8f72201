from quest import db
from quest.models import Question, User

DEMO_USERS = ['testuser1', 'testuser2', 'testuser3']

# (question, answer, explanation, difficulty, topic)
QUESTION_BANK = [
    ("What keyword defines a function in Python?", "def",
     "Functions are declared with 'def name(args):'.", "easy", "basics"),
    ("What is the output of len([1, 2, 3])?", "3",
     "len() returns the number of items in a container.", "easy", "builtins"),
    ("Which built-in type is immutable: list or tuple?", "tuple",
     "Tuples cannot be changed after creation; lists can.", "easy", "data types"),
    ("What does the expression 7 // 2 evaluate to?", "3",
     "// is floor division and drops the fractional part.", "easy", "operators"),
    ("Which keyword is used to handle exceptions?", "except",
     "try/except blocks catch exceptions raised in the try body.", "easy", "errors"),
    ("What is the name of the method called when an object is created?", "__init__",
     "__init__ initialises a freshly created instance.", "medium", "classes"),
    ("Which module provides regular expressions?", "re",
     "The re module implements Perl-style regular expressions.", "medium", "stdlib"),
    ("What keyword turns a function into a generator?", "yield",
     "A function containing yield returns a generator when called.", "medium", "generators"),
    ("What does 'pip' install?", "packages",
     "pip installs packages from the Python Package Index.", "easy", "tooling"),
    ("What is the result of bool([])?", "False",
     "Empty containers are falsy.", "medium", "data types"),
    ("Which statement creates an alias for a module, e.g. import numpy ___ np?", "as",
     "'import x as y' binds the module to a different name.", "easy", "modules"),
    ("What symbol starts a decorator line?", "@",
     "Decorators are applied with @decorator above a def or class.", "medium", "functions"),
    ("What is the type of the value None?", "NoneType",
     "None is the sole instance of NoneType.", "hard", "data types"),
    ("What built-in returns both index and value while looping?", "enumerate",
     "enumerate(iterable) yields (index, item) pairs.", "medium", "builtins"),
]


def seed_users(password='password'):
    for username in DEMO_USERS:
        if User.query.filter_by(username=username).first():
            continue
        user = User(username=username, email=f'{username}@example.com')
        user.set_password(password)
        db.session.add(user)
    db.session.commit()


def seed_questions(terminal_room=49):
    """Bind one question from the bank to every room on the board."""
    for room in range(1, terminal_room + 1):
        text, answer, explanation, difficulty, topic = QUESTION_BANK[(room - 1) % len(QUESTION_BANK)]
        db.session.add(Question(
            question_text=text,
            correct_answer=answer,
            explanation=explanation,
            difficulty=difficulty,
            topic=topic,
            room_position=room,
        ))
    db.session.commit()
