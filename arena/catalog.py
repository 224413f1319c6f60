from arena.models import Character, Move


RARITIES = ("Common", "Rare", "Legendary")

# name, class, rarity, attack, defense, speed, special move, special description, image
CHARACTERS = [
    (
        "Fire Samurai",
        "Warrior",
        "Rare",
        87,
        65,
        92,
        "Inferno Slash",
        "Deals massive damage with a 20% chance to apply a burn effect",
        "/characters/fire-samurai.svg",
    ),
    (
        "Ice Ninja",
        "Assassin",
        "Common",
        72,
        88,
        79,
        "Frost Strike",
        "Moderate damage with a 30% chance to slow the opponent for 2 turns",
        "/characters/ice-ninja.svg",
    ),
    (
        "Shadow Assassin",
        "Assassin",
        "Legendary",
        95,
        45,
        97,
        "Void Embrace",
        "High damage with a 25% chance to become untargetable for 1 turn",
        "/characters/shadow-assassin.svg",
    ),
]

# character name, move name, damage range, effect, description, cooldown
MOVES = [
    ("Fire Samurai", "Basic Attack", "15-25", None, "A basic sword attack", 0),
    (
        "Fire Samurai",
        "Inferno Slash",
        "30-45",
        "burn",
        "A powerful fire attack with burn effect",
        2,
    ),
    (
        "Fire Samurai",
        "Defensive Stance",
        None,
        "defense_boost",
        "Increase defense by 30% for the next turn",
        3,
    ),
    ("Fire Samurai", "Healing Flame", None, "heal", "Restore 15-25 HP", 4),
    ("Ice Ninja", "Shuriken Throw", "12-20", None, "Throw sharp shurikens at the enemy", 0),
    (
        "Ice Ninja",
        "Frost Strike",
        "25-35",
        "slow",
        "Attack with ice, chance to slow opponent",
        2,
    ),
    ("Shadow Assassin", "Shadow Strike", "20-30", None, "Strike from the shadows", 0),
    (
        "Shadow Assassin",
        "Void Embrace",
        "40-60",
        "untargetable",
        "Powerful attack with chance to become untargetable",
        3,
    ),
]


def build_catalog() -> tuple[list[Character], list[Move]]:
    characters = []
    ids_by_name = {}
    for idx, row in enumerate(CHARACTERS, start=1):
        character = Character(idx, *row)
        characters.append(character)
        ids_by_name[character.name] = character.id

    moves = []
    for idx, (owner, name, damage, effect, description, cooldown) in enumerate(MOVES, start=1):
        moves.append(
            Move(
                id=idx,
                character_id=ids_by_name[owner],
                name=name,
                damage=damage,
                effect=effect,
                description=description,
                cooldown=cooldown,
            )
        )
    return characters, moves


def find_move(moves: list[Move], move_id: int | None, move_name: str) -> Move | None:
    for move in moves:
        if move_id is not None and move.id == move_id:
            return move
    for move in moves:
        if move.name == move_name:
            return move
    return None
