"""Entry point: a plain terminal front end for the spelling game."""

import asyncio
import sys

from kindyspell.config import get_categories
from kindyspell.game import SpellingGame


def _render_board(snapshot: dict) -> str:
    """Render slots and the numbered tray for the current word."""
    slots = " ".join(slot["char"] if slot else "_" for slot in snapshot["slots"])
    tray = "  ".join(
        f"{i}:{tile['char']}"
        for i, tile in enumerate(snapshot["tiles"], 1)
        if not tile["placed"]
    )
    lines = [
        f"Word {snapshot['current_index'] + 1}/{len(snapshot['words'])}   Stars: {snapshot['score']}",
        f"Picture: {snapshot['image']}",
        "",
        f"    {slots}",
        "",
        f"Letters: {tray}",
    ]
    return "\n".join(lines)


def _pick_tile(snapshot: dict, choice: str) -> str | None:
    """Map a typed letter or tray number to a tile id.

    Numbers index the full tray as printed; a letter picks the first
    unplaced tile showing it.
    """
    tiles = snapshot["tiles"]
    if choice.isdigit():
        index = int(choice) - 1
        if 0 <= index < len(tiles) and not tiles[index]["placed"]:
            return tiles[index]["id"]
        return None
    letter = choice.upper()
    for tile in tiles:
        if tile["char"] == letter and not tile["placed"]:
            return tile["id"]
    return None


async def _choose_category() -> str:
    categories = get_categories()
    print("\nKindySpell — pick a topic to start!\n")
    for i, cat in enumerate(categories, 1):
        print(f"  {i}. {cat.get('icon', '')} {cat['label']}")

    while True:
        choice = (await asyncio.to_thread(input, "Your choice (number): ")).strip()
        try:
            choice_num = int(choice)
        except ValueError:
            print("Please enter a number.")
            continue
        if 1 <= choice_num <= len(categories):
            return categories[choice_num - 1]["id"]
        print(f"Please enter a number between 1 and {len(categories)}.")


async def run(category: str | None = None) -> int:
    """Play in the terminal until a category run is won. Returns the final score.

    `q` resets the session and goes back to the category menu.
    """
    game = SpellingGame()
    await game.select_category(category or await _choose_category())

    while True:
        snapshot = game.snapshot()
        if snapshot["mode"] == "MENU":
            if snapshot["notice"]:
                print(snapshot["notice"])
            await game.select_category(await _choose_category())
            continue
        if snapshot["mode"] == "VICTORY":
            print(f"\nYou did it! Score: {snapshot['score']} Stars!")
            await game.wait_idle()
            return snapshot["score"]
        if snapshot["word_complete"] or snapshot["loading"]:
            await asyncio.sleep(0.1)
            continue

        print("\n" + _render_board(snapshot))
        choice = (await asyncio.to_thread(input, "Tap a letter (? = hear word, q = back to menu): ")).strip()
        if not choice:
            continue
        if choice == "q":
            game.reset()
            continue
        if choice == "?":
            game.replay_word()
            continue

        tile_id = _pick_tile(game.snapshot(), choice)
        if tile_id is None:
            print("That letter is not in the tray.")
            continue
        outcome = game.submit_letter(tile_id)
        if outcome == "wrong":
            print(game.snapshot()["feedback"])
        elif outcome == "completed":
            item = game.snapshot()["words"][snapshot["current_index"]]
            print(f"\nGood job! {item['word']}! {item['sentence']}")


def main() -> None:
    """CLI entry point — accepts a category id as argument or asks for one."""
    args = sys.argv[1:]
    try:
        asyncio.run(run(args[0] if args else None))
    except (KeyboardInterrupt, EOFError):
        print()


if __name__ == "__main__":
    main()
