"""
End-to-end CLI runs against a local SQLite catalog.
"""
import pytest

from productlookup.cli import catalog_cmd, configure

CSV_TEXT = (
    "Supplier,Category,Product Name,Colour,sz/wt,QTY,UOM QTY,Amount,Order number,Price\n"
    "Acme,Gloves,Nitrile Gloves,Blue,M,5,box,,GLV-100,1250\n"
    "MedCo,Fluids,Saline Solution,,,1,250ml,,SAL-300,450\n"
)

REMOTE_VARS = (
    "CATALOG_STORE_URL", "SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL",
    "CATALOG_STORE_KEY", "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY",
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    for name in REMOTE_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CATALOG_DB_PATH", str(tmp_path / "catalog.db"))
    monkeypatch.delenv("CATALOG_BATCH_SIZE", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "products.csv").write_text(CSV_TEXT, encoding="utf-8")
    return tmp_path


def run(capsys, *argv):
    catalog_cmd.main(list(argv))
    return capsys.readouterr().out


class TestCatalogCommands:

    def test_empty_count(self, workdir, capsys):
        assert "Database is empty" in run(capsys, "count")

    def test_import_then_search(self, workdir, capsys):
        out = run(capsys, "import", "products.csv")
        assert "Successfully imported 2 products (1 batches)" in out
        assert "100%" in out

        assert "ready with 2 products" in run(capsys, "count")

        out = run(capsys, "search", "--name", "gloves nitrile")
        assert "Nitrile Gloves" in out
        assert "Saline" not in out

    def test_too_many_words(self, workdir, capsys):
        with pytest.raises(SystemExit):
            catalog_cmd.main(["search", "--name", "one two three four"])
        assert "at most 3 words" in capsys.readouterr().err
        assert run(capsys, "queries") == ""

    def test_favorites_and_yearly_cost(self, workdir, capsys):
        run(capsys, "import", "products.csv")
        out = run(capsys, "fav", "add", "GLV-100", "--frequency", "2", "--period", "week")
        assert "Added to favorites: Nitrile Gloves" in out

        out = run(capsys, "fav", "list")
        assert "Yearly £260.00" in out
        assert "Total estimated yearly cost: £260.00 across 1 product" in out

        run(capsys, "fav", "usage", "GLV-100", "--frequency", "1", "--period", "month")
        assert "Yearly £30.00" in run(capsys, "fav", "list")

    def test_show_puts_favorites_last(self, workdir, capsys):
        run(capsys, "import", "products.csv")
        run(capsys, "search", "--supplier", "MedCo", "--keep")
        run(capsys, "fav", "add", "GLV-100")
        out = run(capsys, "show")
        names = [line for line in out.splitlines() if line[:1] in ("*", "x", " ") and "[" in line]
        assert "Saline Solution" in names[0]
        assert names[0].startswith("x")
        assert "Nitrile Gloves" in names[1]
        assert names[1].startswith("*")

    def test_queries_recorded(self, workdir, capsys):
        run(capsys, "search", "--order", "GLV")
        run(capsys, "search", "--supplier", "Acme")
        out = run(capsys, "queries")
        assert out.splitlines() == ["  supplier:Acme", "  order:GLV"]

    def test_missing_file(self, workdir, capsys):
        with pytest.raises(SystemExit):
            catalog_cmd.main(["import", "nope.csv"])
        assert "Error" in capsys.readouterr().err

    def test_bad_remote_url(self, workdir, capsys, monkeypatch):
        monkeypatch.setenv("CATALOG_STORE_URL", "not-a-url")
        monkeypatch.setenv("CATALOG_STORE_KEY", "key")
        with pytest.raises(SystemExit):
            catalog_cmd.main(["count"])
        assert "Invalid record store configuration" in capsys.readouterr().err


class TestUpdateEnv:

    def test_replaces_and_appends(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text('OTHER="1"\nCATALOG_STORE_URL="old"\n')
        configure.update_env({"CATALOG_STORE_URL": "https://x.supabase.co", "CATALOG_STORE_KEY": "k"},
                             str(env))
        assert env.read_text().splitlines() == [
            'OTHER="1"',
            "CATALOG_STORE_URL='https://x.supabase.co'",
            "CATALOG_STORE_KEY='k'",
        ]
