from nsw_sales.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["process"])
    assert args.command == "process"
    assert args.config == "config/pipeline.yml"
    assert args.overlay_config is None
    assert args.records_per_chunk is None
    assert args.local is False


def test_parse_args_accepts_overrides():
    args = parse_args(["--output-dir", "out", "--records-per-chunk", "100", "--local", "search-address", "rawson", "--limit", "5"])
    assert args.output_dir == "out"
    assert args.records_per_chunk == 100
    assert args.local is True
    assert args.query == "rawson"
    assert args.limit == 5


def test_parse_args_price_filters():
    args = parse_args(["search-price", "--min", "500000", "--max", "1000000", "--suburb", "ABERDARE", "--year", "2020"])
    assert args.min_price == 500000
    assert args.max_price == 1000000
    assert args.suburb == "ABERDARE"
    assert args.year == 2020
    assert args.limit == 50
