"""
Game constants for Imposter.

This module contains all constant values used throughout the game,
including phases, default settings, player limits, timings and the
built-in word list.
"""

# Game phases (values are sent to clients as-is)
PHASES = {
    'LOBBY': 'lobby',
    'WORD_REVEAL': 'word-reveal',
    'DISCUSSION': 'discussion',
    'WORD_TIME_COUNTDOWN': 'word-time-countdown',
    'WORD_TIME_SPEAKING': 'word-time-speaking',
    'WORD_TIME_WAITING': 'word-time-waiting',
    'VOTING': 'voting',
    'RESULTS': 'results'
}

# Lobby settings a new lobby starts with
DEFAULT_SETTINGS = {
    'randomOrder': True,
    'twoImposters': False,
    'threeImposters': False,
    'imposterHint': False,
    'wordTimeMode': False,
    'survivalMode': False,
    'wordTimeSeconds': 10
}

# Lobby constants
LOBBY_CODE_LENGTH = 6
MAX_ACTIVE_PLAYERS = 10
MAX_CODE_ATTEMPTS = 20

# Minimum active players needed to start a game
MIN_PLAYERS = {
    'DEFAULT': 3,
    'TWO_IMPOSTERS': 4,
    'THREE_IMPOSTERS': 5
}

# Survival mode ends once this many players remain
SURVIVAL_FINAL_PLAYERS = 2

# Timed speaking configuration (seconds)
TIMING_CONFIG = {
    'COUNTDOWN_SECONDS': 3,
    'SPEAKER_PAUSE_SECONDS': 1,
    'TICK_SECONDS': 1,
    'MIN_WORD_TIME_SECONDS': 3,
    'MAX_WORD_TIME_SECONDS': 30
}

# Account constraints
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 6

# Imposter hint configuration
HINT_REVEAL_RATIO = 0.4
HINT_SHORT_WORD_LENGTH = 3
HINT_MASK_CHAR = '_'

# Built-in word list, used when no WORDS_FILE is configured
WORDS = [
    "Apple", "Tree", "House", "Car", "River", "Table", "Chair", "Moon", "Sun",
    "Star", "Cloud", "Rain", "Snow", "Flower", "Forest", "Mountain", "Sea",
    "Beach", "Sky", "Bird", "Fish", "Dog", "Cat", "Horse", "Cow", "Sheep",
    "Lion", "Tiger", "Bear", "Wolf", "Fox", "Deer", "Rabbit", "Snake",
    "Crocodile", "Eagle", "Falcon", "Owl", "Penguin", "Dolphin", "Whale",
    "Shark", "Cliff", "Island", "Desert", "Oasis", "Volcano", "Cave", "Lake",
    "Pond", "Waterfall", "Night", "Stone", "Sand", "Tornado", "Hurricane",
    "Lightning", "Thunder", "Fog", "Frost", "Rainbow", "Bridge", "Tower",
    "Castle", "Palace", "Church", "Temple", "Hut", "Tent", "Villa",
    "Apartment", "Office", "School", "University", "Hospital", "Market",
    "Supermarket", "Restaurant", "Cafe", "Bar", "Park", "Garden",
    "Playground", "Stadium", "Theater", "Cinema", "Museum", "Zoo",
    "Aquarium", "Airport", "Train Station", "Harbor", "Lighthouse", "Farm",
    "Library", "Bakery", "Pizza", "Burger", "Chocolate", "Ice Cream",
    "Coffee", "Tea", "Cheese", "Bread", "Banana", "Strawberry", "Guitar",
    "Piano", "Drum", "Violin", "Camera", "Telephone", "Computer", "Robot",
    "Rocket", "Satellite", "Submarine", "Bicycle", "Helicopter", "Balloon",
    "Umbrella", "Glasses", "Watch", "Crown", "Sword", "Shield", "Treasure",
    "Pirate", "Wizard", "Dragon", "Ghost", "Vampire", "Mermaid", "Astronaut",
    "Doctor", "Teacher", "Firefighter", "Chef", "Detective", "Football",
    "Tennis", "Chess", "Skiing", "Surfing", "Birthday", "Wedding",
    "Christmas", "Halloween", "Vacation", "Camping", "Circus", "Magic"
]
