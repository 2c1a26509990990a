"""
Seed rows for the puzzles table.
Level 1 of each puzzle is static: its content lives in
base_definition.original_data and its answer in base_definition.solution.
Later levels are generated on demand.
"""

from typing import Any, Dict, List

MAX_LEVEL = 30


def _puzzle(puzzle_id: str, name: str, category: str, description: str, puzzle_type: str,
            data: Any, solution: Any, xp: int, subject: str = None) -> Dict[str, Any]:
    return {
        "id": puzzle_id,
        "name": name,
        "category": category,
        "subject": subject,
        "description": description,
        "max_level": MAX_LEVEL,
        "default_xp_award": xp,
        "base_definition": {
            "type": puzzle_type,
            "original_data": data,
            "solution": solution,
        },
    }


def _input(puzzle_id, name, category, description, prompt, solution, xp, subject=None):
    return _puzzle(puzzle_id, name, category, description, "placeholder_input",
                   {"prompt": prompt}, solution, xp, subject)


WORD = "Word Puzzles"
LOGIC = "Logic Puzzles"
MATH = "Mathematical Challenges"
CREATIVE = "Creative Conundrums"
CONCEPTUAL = "Conceptual Puzzles (NEET Focus)"
VISUAL = "Visual Puzzles"

PUZZLES: List[Dict[str, Any]] = [
    _puzzle("word_001", "Anagram Hunt (Science)", WORD,
            "Unscramble these NEET-related terms.", "anagram",
            {"words": [
                {"scrambled": "HPOYSCIT", "category": "Physics"},
                {"scrambled": "GEBYOOLI", "category": "Biology"},
                {"scrambled": "HRTYSMICE", "category": "Chemistry"},
            ]},
            {"HPOYSCIT": "PHYSICS", "GEBYOOLI": "BIOLOGY", "HRTYSMICE": "CHEMISTRY"}, 15),
    _puzzle("logic_004", "The Missing Symbol", LOGIC,
            "Find the logical operator that completes the equation: 10 ? 2 = 5", "missing_symbol",
            {"equationParts": ["10", "2", "5"], "operators": ["+", "-", "*", "/"]}, "/", 10),
    _puzzle("math_001", "The Sequence Solver", MATH,
            "Find the next number in this sequence: 1, 1, 2, 3, 5, 8, ?", "sequence_solver",
            {"sequence": "1, 1, 2, 3, 5, 8", "displaySequence": "1, 1, 2, 3, 5, 8, ?"}, "13", 10),
    _puzzle("logic_002", "Knights and Knaves", LOGIC,
            'Two islanders, A and B, stand before you. A says, "At least one of us is a Knave." '
            "B says nothing. Determine who is a Knight (always tells truth) and who is a Knave (always lies).",
            "knights_knaves",
            {"characters": ["A", "B"], "statements": {"A": "At least one of us is a Knave."}},
            {"A": "Knight", "B": "Knave"}, 25),
    _puzzle("creative_001", "Alternative Uses", CREATIVE,
            "List as many alternative uses for a common paperclip as you can in 2 minutes.",
            "alternative_uses", {"item": "a common paperclip"}, None, 10),
    _puzzle("conceptual_phy_001", "Vector Voyage", CONCEPTUAL,
            "A ship sails 3km East, then 4km North. What is its displacement (magnitude and direction)?",
            "vector_voyage", {},
            {"magnitude": 5, "direction": 53.13, "directionUnit": "degrees North of East"}, 15, "Physics"),
    _puzzle("word_004", "Missing Vowels (Chemistry)", WORD,
            "Fill in the missing vowels for these common chemical compound names.", "missing_vowels",
            {"words": [
                {"gapped": "S_LF_R_C _C_D", "category": "Acid"},
                {"gapped": "P_T_SS__M P_RM_NG_N_T_", "category": "Salt"},
                {"gapped": "_TH_N_L", "category": "Alcohol"},
            ]},
            {"S_LF_R_C _C_D": "SULPHURIC ACID", "P_T_SS__M P_RM_NG_N_T_": "POTASSIUM PERMANGANATE",
             "_TH_N_L": "ETHANOL"}, 15, "Chemistry"),
    _input("logic_001", "The Bridge Crossing Riddle", LOGIC,
           "Four people need to cross a bridge at night with one flashlight. Minimum time? Submit your strategy and time.",
           "Enter your strategy and minimum time.", None, 20),
    _input("logic_003", "Einstein's Riddle (Zebra Puzzle)", LOGIC,
           "Who owns the zebra? Submit your detailed solution.",
           "Who owns the zebra and what is their house color, pet, drink, and cigarette brand?", None, 50),
    _input("logic_005", "River Crossing Puzzle", LOGIC,
           "Get the farmer, wolf, goat, and cabbage across the river safely. Describe the steps.",
           "Describe the sequence of crossings.", None, 30),
    _input("math_002", "Diophantine Dilemma", MATH,
           "Find integer solutions (x,y) for 3x + 5y = 47. Submit one solution.",
           "Enter an integer (x,y) solution.", None, 40),
    _input("math_003", "The Tower of Hanoi", MATH,
           "What is the minimum number of moves for 5 disks?", "Minimum moves for 5 disks?", "31", 20),
    _input("math_004", "Probability Paradox", MATH,
           "Explain the Monty Hall problem: should you switch doors?",
           "Explain your reasoning for switching or not.", None, 25),
    _input("math_005", "Cryptarithmetic Challenge", MATH,
           "Solve SEND + MORE = MONEY. What digits do S,E,N,D,M,O,R,Y represent?",
           "Enter the digit for each letter.", None, 35),
    _input("creative_002", "Story Spark", CREATIVE,
           "Write a short story (max 100 words) using Dragon, Coffee, Starlight.",
           "Write your short story.", None, 15),
    _input("creative_003", "Rebus Rally", CREATIVE,
           'What does "MAN BOARD" represent if MAN is standing on the word BOARD?',
           "Interpret the rebus.", "MAN OVERBOARD", 10),
    _input("creative_004", "Concept Mashup", CREATIVE,
           'Combine "photosynthesis" and "quantum entanglement" into a novel invention idea.',
           "Describe your invention.", None, 30),
    _input("conceptual_chem_001", "Balancing Act", CONCEPTUAL,
           "Balance: CH4 + O2 -> CO2 + H2O. Enter coefficients (e.g., 1,2,1,2).",
           "Enter coefficients for CH4, O2, CO2, H2O.", "1,2,1,2", 20, "Chemistry"),
    _input("conceptual_bio_001", "Genetic Code Cracker", CONCEPTUAL,
           "DNA: TACGGATTCACT. What is the mRNA sequence?",
           "Enter the mRNA sequence.", "AUGCCUAAGUGA", 25, "Biology"),
    _input("conceptual_phy_002", "Energy Transformation", CONCEPTUAL,
           "Describe main energy transformations in a hydroelectric dam.",
           "List energy transformations.", None, 20, "Physics"),
    _input("conceptual_chem_002", "Ideal Gas Law Scenario", CONCEPTUAL,
           "If pressure of an ideal gas is doubled at constant temperature, what happens to volume?",
           "What happens to the volume?", "HALVED", 30, "Chemistry"),
    _input("visual_003", "Pattern Recognition", VISUAL,
           "Square, Circle, Triangle, Square, Circle, ?", "What's the next shape?", "TRIANGLE", 15),
    _input("word_002", "Crossword Challenge (Bio)", WORD,
           "Clue: Green pigment in plants. (11 letters)", "Enter the 11-letter word.", "CHLOROPHYLL", 20, "Biology"),
    _input("word_003", "Scientific Term Origin", WORD,
           'What is the Greek origin of "Biology"? (Logos + ?)', "What does 'Bios' mean?", "LIFE", 25),
]


def get_catalog_puzzle(puzzle_id: str) -> Dict[str, Any]:
    for puzzle in PUZZLES:
        if puzzle["id"] == puzzle_id:
            return puzzle
    raise KeyError(puzzle_id)
