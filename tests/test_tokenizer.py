from services.tokenizer import normalize, tokenize


def test_tokenize_lowercases_and_strips_punctuation():
    assert tokenize("What causes Eczema flare-ups?") == ["what", "causes", "eczema", "flare", "ups"]


def test_tokenize_drops_short_tokens():
    assert tokenize("a I is 6 12 UV") == ["is", "12", "uv"]


def test_tokenize_empty_input():
    assert tokenize("") == []
    assert tokenize(None) == []
    assert tokenize("  ?!  ") == []


def test_tokenize_is_stable():
    text = "Topical retinoids (e.g. tretinoin) cause irritation."
    assert tokenize(text) == tokenize(text)


def test_normalize_collapses_whitespace():
    assert normalize("  Dry \n\tSKIN  ") == "dry skin"
    assert normalize(None) == ""
