"""ankivocab: Anki archive codec and vocabulary mastery tracking."""
