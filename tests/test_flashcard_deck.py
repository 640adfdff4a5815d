from guided_reader.controllers.flashcard_deck import FlashcardDeck
from guided_reader.domain.segments import VocabularyItem

ITEMS = [
    VocabularyItem("Hund", "куче"),
    VocabularyItem("Katze", "котка"),
    VocabularyItem("Haus", "къща"),
]


def test_empty_deck():
    deck = FlashcardDeck()
    assert len(deck) == 0
    assert deck.current() is None
    assert deck.next() is None
    assert deck.previous() is None


def test_next_wraps_to_first():
    deck = FlashcardDeck(ITEMS)
    assert deck.current() == ITEMS[0]
    assert deck.next() == ITEMS[1]
    assert deck.next() == ITEMS[2]
    assert deck.next() == ITEMS[0]


def test_previous_wraps_to_last():
    deck = FlashcardDeck(ITEMS)
    assert deck.previous() == ITEMS[2]
    assert deck.index == 2


def test_moving_unflips_the_card():
    deck = FlashcardDeck(ITEMS)
    assert deck.flip() is True
    assert deck.flipped
    deck.next()
    assert not deck.flipped
    deck.flip()
    deck.previous()
    assert not deck.flipped


def test_new_items_reset_position():
    deck = FlashcardDeck(ITEMS)
    deck.next()
    deck.flip()
    deck.set_items(ITEMS[:1])
    assert deck.index == 0
    assert not deck.flipped
    assert deck.next() == ITEMS[0]
