ABILITY_SCORES = ["strength", "dexterity", "constitution", "intelligence", "wisdom", "charisma"]
ABILITY_ABBREVIATIONS = {
    "str": "strength",
    "dex": "dexterity",
    "con": "constitution",
    "int": "intelligence",
    "wis": "wisdom",
    "cha": "charisma",
}
DEFAULT_ABILITY_SCORE = 8
MIN_ABILITY_SCORE = 1
MAX_ABILITY_SCORE = 30

PROFICIENCY_CATEGORIES = ["armor", "weapons", "tools", "skills", "languages", "saving_throws"]
OPTIONAL_PROFICIENCY_CATEGORIES = ["skills", "languages", "tools"]
OPTIONAL_ORIGINS = ["race", "class", "background"]
CHOICE_SOURCE_SUFFIX = "Choice"

DEFAULT_LANGUAGE = "Common"
DEFAULT_LANGUAGE_SOURCE = "Default"
DEFAULT_ALLOWED_SOURCES = ["PHB"]
DEFAULT_FEAT_SOURCE = "Unknown"
IMPORTED_SOURCE = "Imported"
RACIAL_SOURCES = ("Race", "Subrace")

DEFAULT_ASI_LEVELS = (4, 8, 12, 16, 19)
CLASS_ASI_LEVELS = {
    "fighter": (4, 6, 8, 12, 14, 16, 19),
    "rogue": (4, 8, 10, 12, 16, 19),
}
MAX_CHARACTER_LEVEL = 20

DEFAULT_SIZE = "M"
DEFAULT_SPEED = {"walk": 30, "fly": 0, "swim": 0, "climb": 0, "burrow": 0}
CURRENCY_KEYS = ["cp", "sp", "ep", "gp", "pp"]
EQUIPMENT_SLOTS = ["head", "body", "hands", "feet", "back", "neck", "wrists", "fingers", "waist"]
MULTI_ITEM_SLOTS = {"hands", "wrists", "fingers"}
