"""
Hinglish Meal Assistant - Curated Vocabulary

Static word tables shared by the translator, the food extractor and the
ambiguity resolver. Every table is an ordered mapping or tuple: where two
entries could both apply, the one declared first wins.
"""

# === Hindi -> English translation tables ===
# Values are always a single token so that translated text keeps one token
# per spoken word.

STAPLES: dict[str, str] = {
    "chawal": "rice",
    "dal": "lentils",
    "sabzi": "vegetable",
    "sabji": "vegetable",
    "chapati": "roti",
    "phulka": "roti",
    "paratha": "flatbread",
    "dahi": "yogurt",
    "makhan": "butter",
    "dudh": "milk",
    "doodh": "milk",
    "chai": "tea",
    "paani": "water",
    "anda": "egg",
    "ande": "egg",
    "murgi": "chicken",
    "machli": "fish",
    "gosht": "mutton",
    "namak": "salt",
    "cheeni": "sugar",
    "pyaaz": "onion",
    "lahsun": "garlic",
    "adrak": "ginger",
    "kela": "banana",
    "seb": "apple",
}

VEGETABLES: dict[str, str] = {
    # "shimla mirch" must precede "mirch"
    "shimla mirch": "capsicum",
    "mirch": "chili",
    "aloo": "potato",
    "tamatar": "tomato",
    "palak": "spinach",
    "gobi": "cauliflower",
    "bhindi": "okra",
    "baingan": "eggplant",
    "gajar": "carrot",
    "matar": "peas",
    "methi": "fenugreek",
    "kheera": "cucumber",
}

GRAINS_AND_PULSES: dict[str, str] = {
    "chana": "chickpeas",
    "jeera": "cumin",
    "atta": "flour",
    "besan": "gramflour",
}

COOKING_ADJECTIVES: dict[str, str] = {
    "pakka": "cooked",
    "kaccha": "raw",
    "garam": "hot",
    "thanda": "cold",
    "meetha": "sweet",
    "namkeen": "salty",
    "teekha": "spicy",
    "khatta": "sour",
    "tala": "fried",
    "ubla": "boiled",
    "bhapa": "steamed",
}

QUANTITY_TERMS: dict[str, str] = {
    "thoda": "little",
    "zyada": "more",
    "kam": "less",
    "poora": "full",
    "aadha": "half",
}

NUMBER_TERMS: dict[str, str] = {
    "ek": "one",
    "do": "two",
    "teen": "three",
    "char": "four",
    "paanch": "five",
}

HINDI_TO_ENGLISH: dict[str, str] = {
    **STAPLES,
    **VEGETABLES,
    **GRAINS_AND_PULSES,
    **COOKING_ADJECTIVES,
    **QUANTITY_TERMS,
    **NUMBER_TERMS,
}

# Foods that keep their own name in the normalized vocabulary
COMMON_FOODS: frozenset[str] = frozenset({
    "rice", "bread", "milk", "tea", "coffee", "water", "juice", "lassi",
    "chicken", "mutton", "fish", "egg", "vegetable", "fruit",
    "curry", "soup", "salad", "sandwich", "pizza", "burger",
    "roti", "naan", "paneer", "ghee", "idli", "dosa", "sambar", "rasam",
    "poha", "upma", "khichdi", "biryani", "pulao", "rajma", "chole",
    "samosa", "pakora", "dhokla", "raita", "halwa", "kheer",
})

# Translations that are ingredients rather than something eaten on its own
NON_FOOD_TRANSLATIONS: frozenset[str] = frozenset({"salt", "sugar", "cumin", "flour", "gramflour"})

# Translated tokens that name something edible
FOOD_TOKENS: frozenset[str] = frozenset(
    (
        set(STAPLES.values())
        | set(VEGETABLES.values())
        | set(GRAINS_AND_PULSES.values())
        | COMMON_FOODS
    )
    - NON_FOOD_TRANSLATIONS
)

# === Extraction helpers ===

STOP_WORDS: frozenset[str] = frozenset({
    "maine", "mene", "main", "mai", "mera", "meri", "mujhe", "humne", "hum",
    "aapne", "i", "we", "my", "me",
    "khaya", "khayi", "khaye", "khana", "banaya", "banai", "piya", "pi", "liya", "li",
    "had", "ate", "eaten", "drank", "made", "cooked", "take", "took",
    "aur", "or", "with", "and", "the", "a", "an", "ke", "ki", "ka", "saath",
    "mein", "me", "tha", "thi", "hai", "kya", "kuch", "abhi", "aaj",
    "ek", "do", "teen", "char", "paanch",
    "one", "two", "three", "four", "five",
    "healthy", "sehatmand",
})

NUMBER_WORDS: dict[str, float] = {
    "ek": 1.0, "do": 2.0, "teen": 3.0, "char": 4.0, "paanch": 5.0,
    "one": 1.0, "two": 2.0, "three": 3.0, "four": 4.0, "five": 5.0,
}

DESCRIPTIVE_QUANTITIES: dict[str, float] = {
    "thoda": 0.5,
    "zyada": 2.0,
    "kam": 0.3,
    "aadha": 0.5,
    "poora": 1.0,
}

# Every spoken unit must also have a gram weight in the portion table
QUANTITY_UNITS: tuple[str, ...] = (
    "katori", "bowl", "glass", "roti", "spoon", "cup", "plate",
    "pinch", "handful", "portion", "piece", "slice",
    "kg", "gram", "grams", "g", "liter", "litre", "ml",
)

COOKING_METHOD_TOKENS: tuple[str, ...] = (
    "tadka", "bhuna", "dum", "tawa", "tandoor", "steamed", "fried",
)

# Hinglish dish name -> possible specific dishes. Keys appear both in the
# Hindi form and in their translated form.
AMBIGUOUS_TERMS: dict[str, list[str]] = {
    "dal": ["moong dal", "toor dal", "masoor dal", "chana dal", "urad dal"],
    "sabzi": ["aloo sabzi", "palak sabzi", "gobi sabzi", "bhindi sabzi"],
    "paratha": ["aloo paratha", "gobi paratha", "paneer paratha", "plain paratha"],
    "chai": ["milk tea", "black tea", "green tea", "masala chai"],
    "lentils": ["moong dal", "toor dal", "masoor dal", "chana dal", "urad dal"],
    "vegetable": ["aloo sabzi", "palak sabzi", "gobi sabzi", "bhindi sabzi"],
    "flatbread": ["aloo paratha", "gobi paratha", "paneer paratha", "plain paratha"],
    "tea": ["milk tea", "black tea", "green tea", "masala chai"],
    "curry": ["chicken curry", "mutton curry", "paneer curry", "vegetable curry"],
    "rice": ["plain rice", "jeera rice", "biryani", "pulao"],
}

# Two-word dishes recognized as a single item
COMPOUND_FOODS: tuple[str, ...] = (
    "aloo sabzi",
    "palak paneer",
    "dal makhani",
    "jeera rice",
    "masala chai",
)

# === Conversation keywords ===

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "protein": ("protein",),
    "calories": ("calorie", "calories"),
    "weight": ("weight",),
    "diet": ("diet",),
    "exercise": ("exercise", "workout"),
}

MEAL_KEYWORDS: tuple[str, ...] = (
    "khana", "meal", "breakfast", "lunch", "dinner", "snack",
    "dal", "rice", "roti", "sabzi", "curry", "khaya", "eaten",
)

FOLLOW_UP_INDICATORS: tuple[str, ...] = (
    "aur", "or", "what about", "kya", "how much", "kitna", "kitni",
    "tell me more", "batao", "explain", "samjhao", "what foods", "which foods",
)

NUTRITION_TOPICS: tuple[str, ...] = ("protein", "calorie", "vitamin", "mineral", "carb", "fat")

# === Nutrition query keywords ===

NUTRITION_CONCERNS: dict[str, tuple[str, ...]] = {
    "diabetes": ("diabetes", "sugar", "blood sugar"),
    "weight_loss": ("weight loss", "vajan kam", "patla"),
    "weight_gain": ("weight gain", "vajan badhana", "mota"),
    "high_bp": ("blood pressure", "bp", "hypertension"),
    "cholesterol": ("cholesterol", "heart"),
}
