from ingestion.extraction import HeuristicExtractor


extractor = HeuristicExtractor()


def test_explicit_name_with_scheduling_intent():
    r = extractor.extract("Meu nome é Carla, quero agendar natação hoje")
    assert r.name == "Carla"
    assert r.fields["discipline"] == "natação"
    assert r.fields["interest_level"] == "quente"
    assert r.has_scheduling_intent is True
    assert r.confidence == 0.8


def test_name_stops_at_connector_and_keeps_particles():
    r = extractor.extract("oi, me chamo maria da silva e quero saber de pilates")
    assert r.name == "Maria da Silva"
    assert r.fields["discipline"] == "pilates"
    assert r.has_scheduling_intent is False


def test_keywords_match_without_accents():
    r = extractor.extract("Eu sou o Pedro, talvez faca musculacao")
    assert r.name == "Pedro"
    assert r.fields["discipline"] == "musculação"
    assert r.fields["interest_level"] == "frio"


def test_fallback_to_first_capitalized_word():
    r = extractor.extract("Bom dia! Queria informações sobre yoga")
    assert r.name == "Bom"
    assert r.confidence == 0.4
    assert r.fields["discipline"] == "yoga"


def test_no_candidate_name():
    r = extractor.extract("oi tudo bem?")
    assert r.name is None
    assert r.confidence == 0.0


def test_empty_message():
    r = extractor.extract("")
    assert r.fields == {}
    assert r.as_dict() == {"confidence_score": 0.0}
