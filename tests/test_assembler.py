"""Tests for transmission assembly."""

from datetime import date, time

from conftest import SECOND_WRITER_IPI

from cwr_registry.core.diagnostics import Severity
from cwr_registry.core.vocabulary import TransactionType
from cwr_registry.services.assembler import TransactionAssembler, primary_transaction_type
from cwr_registry.services.catalog import Catalog
from cwr_registry.services.parser import TransactionParser


def record_types(result):
    return [line[:3] for line in result.lines]


def codes(result):
    return [diagnostic.code for diagnostic in result.diagnostics]


class TestMinimalWork:
    """One controlled writer owning the whole work."""

    def test_record_sequence(self, catalog, minimal_work, fixed_now):
        result = TransactionAssembler(catalog, now=fixed_now).assemble()

        assert record_types(result) == ["HDR", "GRH", "NWR", "SWR", "SWT", "GRT", "TRL"]
        assert result.work_ids == ["WK001"]
        assert result.filename == "CW240001ACM_021.V21"
        assert len(result.diagnostics) == 0
        assert result.text.endswith("\r\n")
        assert result.text.count("\r\n") == 7

    def test_header(self, catalog, minimal_work, fixed_now):
        header = TransactionAssembler(catalog, now=fixed_now).assemble().lines[0]

        assert len(header) == 101
        assert header.startswith("HDRPB538783703ACME MUSIC")
        assert header[59:64] == "01.10"
        assert header[64:86] == "2024030514301520240305"

    def test_body_prefixes_and_counts(self, catalog, minimal_work, fixed_now):
        """Record sequences restart per transaction; counts include group and file envelopes."""
        lines = TransactionAssembler(catalog, now=fixed_now).assemble().lines

        assert lines[1] == "GRHNWR0000102.100000000000  "
        assert lines[2].startswith("NWR0000000000000000MY FIRST SONG")
        assert lines[3].startswith("SWR0000000000000001W1       SMITH")
        assert lines[4][:19] == "SWT0000000000000002"
        assert lines[5] == "GRT000010000000100000005" + "   " + " " * 10
        assert lines[6] == "TRL000010000000100000007"

    def test_writer_territory(self, catalog, minimal_work, fixed_now):
        swt = TransactionAssembler(catalog, now=fixed_now).assemble().lines[4]

        assert swt[19:28] == "W1       "
        assert swt[28:43] == "100001000010000"
        assert swt[43] == "I"
        assert swt[44:48] == "2136"
        assert swt[49:52] == "001"

    def test_work_defaults_are_written(self, catalog, minimal_work, fixed_now):
        nwr = TransactionAssembler(catalog, now=fixed_now).assemble().lines[2]

        assert nwr[19:79].rstrip() == "MY FIRST SONG"
        assert nwr[81:95].rstrip() == "WK001"
        assert nwr[126:129] == "POP"
        assert nwr[135] == "U"
        assert nwr[142:145] == "ORI"

    def test_character_filter(self, catalog, writer, submitter, fixed_now):
        work = catalog.register_work("WK010", "CAFÉ SONG")
        catalog.add_share(work, "W1", "CA", 100)

        assembler = TransactionAssembler(catalog, now=fixed_now, character_filter=lambda text: text.replace("É", "E"))
        assert assembler.assemble().lines[2][19:28] == "CAFE SONG"


class TestChainOfTitle:
    """Publisher and writer sharing chain 1."""

    def test_single_publisher_for_writer(self, catalog, published_work, fixed_now):
        result = TransactionAssembler(catalog, now=fixed_now).assemble()

        assert record_types(result) == ["HDR", "GRH", "NWR", "SPU", "SPT", "SWR", "SWT", "PWR", "GRT", "TRL"]
        assert record_types(result).count("PWR") == 1
        assert result.lines[-2][16:24] == "00000008"
        assert result.lines[-1][16:24] == "00000010"

    def test_publisher_records(self, catalog, published_work, fixed_now):
        lines = TransactionAssembler(catalog, now=fixed_now).assemble().lines
        spu, spt, pwr = lines[3], lines[4], lines[7]

        assert spu[19:21] == "01"
        assert spu[21:30] == "P1       "
        assert spu[30:75].rstrip() == "ACME MUSIC"
        assert spu[76:78] == "E "
        assert spu[87:98] == "00538783703"
        assert spu[112:115] == "021"
        assert spu[115:120] == "05000"
        assert spt[34:49] == "050001000010000"
        assert pwr[19:28] == "P1       "
        assert pwr[28:73].rstrip() == "ACME MUSIC"
        assert pwr[101:110] == "W1       "
        assert len(pwr) == 110

    def test_missing_chain_warning(self, catalog, submitter, writer, fixed_now):
        """A writer pointing at a chain without an original publisher is reported."""
        work = catalog.register_work("WK020", "BROKEN CHAIN")
        publisher = catalog.add_share(work, "P1", "E", 50, 100, 100, link=1)
        catalog.add_territory(publisher, 2136, "I", 50, 100, 100)
        catalog.add_share(work, "W1", "CA", 50, 0, 0, link=2)

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert "PWR" not in record_types(result)
        assert "MISSING_CHAIN" in codes(result)

    def test_sub_publisher_without_territories_is_dropped(self, catalog, published_work, fixed_now):
        catalog.add_shareholder("P3", "FOREIGN MUSIC")
        catalog.add_share(published_work, "P3", "SE", 0, 0, 0, link=1)

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert record_types(result).count("OPU") == 0
        assert "NO_COLLECTION_RIGHTS" in codes(result)

    def test_other_publisher_in_chain(self, catalog, published_work, fixed_now):
        """An uncontrolled sub-publisher with territories is written as OPU without territories in 2.1."""
        catalog.add_shareholder("P3", "FOREIGN MUSIC")
        share = catalog.add_share(published_work, "P3", "SE", 0, 0, 0, link=1)
        catalog.add_territory(share, 826, "E", 0, 0, 0)

        types = record_types(TransactionAssembler(catalog, now=fixed_now).assemble())
        assert types[2:9] == ["NWR", "SPU", "SPT", "OPU", "SWR", "SWT", "PWR"]


class TestRejections:
    def test_ownership_imbalance_skips_work(self, catalog, submitter, writer, fixed_now):
        """40% + 40% ownership produces no transmission."""
        work = catalog.register_work("WK030", "HALF SONG")
        catalog.add_share(work, "P1", "E", 40, 40, 40, link=1)
        catalog.add_share(work, "W1", "CA", 40, 40, 40, link=1)

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert result.text == ""
        assert result.work_ids == []
        error = result.diagnostics.filter(Severity.ERROR)[0]
        assert error.code == "OWNERSHIP_TOTAL"
        assert error.work_id == "WK030"
        assert error.message.startswith("SKIPPING WORK - Title: HALF SONG: PR ownership shares total 80.00%")

    def test_invalid_work_is_skipped_but_others_are_written(self, catalog, minimal_work, fixed_now):
        catalog.register_work("WK031", "")

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert result.work_ids == ["WK001"]
        assert "TITLE_REQUIRED" in codes(result)
        assert result.lines[-1] == "TRL000010000000100000007"

    def test_missing_submitter_settings(self, settings, catalog, minimal_work, fixed_now):
        settings = settings.model_copy(update={"submitter_ipi": ""})
        result = TransactionAssembler(catalog, settings, now=fixed_now).assemble()

        assert result.text == ""
        assert codes(result) == ["NO_SUBMITTER"]

    def test_submitter_must_be_a_shareholder(self, settings, fixed_now):
        catalog = Catalog(settings=settings)
        catalog.add_shareholder("W1", "SMITH", "JOHN", controlled=True, ipi_name_number="00123456790")
        work = catalog.register_work("WK001", "SONG")
        catalog.add_share(work, "W1", "CA", 100)

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert result.text == ""
        assert codes(result) == ["SUBMITTER_NOT_REGISTERED"]

    def test_submitter_found_by_party_number(self, settings, fixed_now):
        catalog = Catalog(settings=settings)
        catalog.add_shareholder("00538783703", "ACME MUSIC", controlled=True)
        catalog.add_shareholder("W1", "SMITH", "JOHN", controlled=True, ipi_name_number="00123456790")
        catalog.add_share(catalog.register_work("WK001", "SONG"), "W1", "CA", 100)

        assert TransactionAssembler(catalog, now=fixed_now).assemble().work_ids == ["WK001"]

    def test_missing_receiver_is_a_warning(self, settings, catalog, minimal_work, fixed_now):
        settings = settings.model_copy(update={"receiver_society": 0})
        result = TransactionAssembler(catalog, settings, now=fixed_now).assemble()

        assert result.work_ids == ["WK001"]
        assert codes(result) == ["NO_RECEIVER"]
        assert result.filename.endswith("_000.V21")


class TestGroups:
    def test_revision_group(self, catalog, minimal_work, fixed_now):
        catalog.add_cross_reference(minimal_work, 21, "ASCAP123")

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert result.lines[1][3:6] == "REV"
        assert result.lines[2][:3] == "REV"

    def test_one_group_per_transaction_type(self, catalog, minimal_work, writer, fixed_now):
        revised = catalog.register_work("WK040", "REVISED SONG")
        catalog.add_share(revised, "W1", "CA", 100)
        catalog.add_cross_reference(revised, 21, "ASCAP123")
        catalog.add_share(catalog.register_work("WK041", "ANOTHER NEW SONG"), "W1", "CA", 100)

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert record_types(result) == [
            "HDR", "GRH", "NWR", "SWR", "SWT", "NWR", "SWR", "GRT", "GRH", "REV", "SWR", "GRT", "TRL"
        ]
        assert result.work_ids == ["WK001", "WK041", "WK040"]
        assert result.lines[5][3:11] == "00000001"
        assert result.lines[8][6:11] == "00002"
        assert result.lines[9][3:11] == "00000000"
        assert result.lines[-1] == "TRL000020000000300000013"

    def test_group_without_admitted_works_is_not_written(self, catalog, minimal_work, writer, fixed_now):
        """A revision group whose only work is rejected emits neither GRH nor GRT."""
        revised = catalog.register_work("WK045", "REJECTED REVISION")
        catalog.add_share(revised, "W1", "CA", 40)
        catalog.add_cross_reference(revised, 21, "ASCAP123")

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert record_types(result) == ["HDR", "GRH", "NWR", "SWR", "SWT", "GRT", "TRL"]
        assert result.work_ids == ["WK001"]
        assert "OWNERSHIP_TOTAL" in codes(result)
        assert result.lines[1][6:11] == "00001"
        assert result.lines[-1] == "TRL000010000000100000007"

    def test_acknowledgement_group(self, catalog, minimal_work, fixed_now):
        catalog.set_acknowledgement(
            minimal_work,
            creation_date=date(2024, 1, 2),
            creation_time=time(10, 0, 0),
            original_group_id=1,
            original_transaction_sequence=0,
            original_transaction_type="NWR",
            creation_title="MY FIRST SONG",
            submitter_creation_number="WK001",
            recipient_creation_number="R123",
            processing_date=date(2024, 1, 3),
            transaction_status="AS",
        )

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert record_types(result)[1:5] == ["GRH", "ACK", "NWR", "SWR"]
        assert result.lines[1][3:6] == "ACK"
        assert result.lines[2][:19] == "ACK0000000000000000"
        assert result.lines[3][:19] == "NWR0000000000000001"

    def test_primary_transaction_type(self, catalog):
        work = catalog.register_work("X", "X", transaction_type=int(TransactionType.REV | TransactionType.ISW))
        assert primary_transaction_type(work) == TransactionType.REV
        work.transaction_type = int(TransactionType.ACK)
        assert primary_transaction_type(work) is None


class TestWorkDetails:
    def test_unknown_writer_is_written_without_identifiers(self, catalog, writer, submitter, fixed_now):
        party = catalog.synthesize_party_number("DOE", "JANE")
        catalog.add_shareholder(party, "DOE", "JANE")
        work = catalog.register_work("WK050", "CO-WRITTEN")
        catalog.add_share(work, "W1", "CA", 50)
        catalog.add_share(work, party, "CA", 50)

        lines = TransactionAssembler(catalog, now=fixed_now).assemble().lines
        owr = lines[4]
        assert owr[:3] == "OWR"
        assert owr[19:28] == " " * 9
        assert owr[28:73].rstrip() == "DOE"
        assert owr[115:126] == " " * 11

    def test_numeric_party_number_of_identified_writer_is_kept(self, catalog, writer, submitter, settings, fixed_now):
        """A submitter-assigned numeric party number is not mistaken for a temporary one."""
        catalog.add_shareholder("1001", "JONES", "MARY", ipi_name_number=SECOND_WRITER_IPI)
        work = catalog.register_work("WK051", "CO-WRITTEN")
        catalog.add_share(work, "W1", "CA", 50, 50, 50)
        catalog.add_share(work, "1001", "CA", 50, 50, 50)

        text = TransactionAssembler(catalog, now=fixed_now).assemble().text
        owr = text.split("\r\n")[4]
        assert owr[:3] == "OWR"
        assert owr[19:28] == "000001001"
        assert owr[115:126] == SECOND_WRITER_IPI

        parsed = TransactionParser(settings=settings).parse(text).catalog
        assert [share.interested_party_number for share in parsed.get_work("WK051").shares] == ["W1", "1001"]
        assert parsed.get_shareholder("1001").ipi_name_number == SECOND_WRITER_IPI
        assert not parsed.get_shareholder("1001").is_temporary

    def test_sub_records_in_order(self, catalog, minimal_work, fixed_now):
        catalog.add_alternate_title(minimal_work, "MY 1ST SONG", "AT")
        catalog.add_performer("JONES", "TOM", work=minimal_work)
        catalog.add_isrc(minimal_work, "USRC17607839")
        catalog.add_release("036000291452", isrc="USRC17607839", title="FIRST ALBUM", label="ACME RECORDS")
        catalog.add_origin(minimal_work, "FIL", production_title="THE MOVIE")
        catalog.add_instrument_detail(minimal_work, "PNO", 1)
        catalog.add_additional_info(minimal_work, 21, "PER", work_number="ASCAP1")
        catalog.add_cross_reference(minimal_work, 10, "BMI1")

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert record_types(result)[5:11] == ["ALT", "PER", "REC", "ORN", "IND", "ARI"]

        rec = result.lines[7]
        assert len(rec) == 266
        assert rec[98:158].rstrip() == "FIRST ALBUM"
        assert rec[236:249] == "0036000291452"
        assert rec[249:261] == "USRC17607839"
        assert rec[261] == "A"

    def test_invalid_release_code_is_blanked(self, catalog, minimal_work, fixed_now):
        catalog.add_isrc(minimal_work, "USRC17607839")
        catalog.add_release("1234567890123", isrc="USRC17607839")

        result = TransactionAssembler(catalog, now=fixed_now).assemble()
        assert result.lines[5][236:249] == " " * 13
        assert "INVALID_EAN" in codes(result)

    def test_territory_rewrite(self, settings, catalog, minimal_work, fixed_now):
        """Collection is restricted to the receiver's countries when rewriting is enabled."""
        settings = settings.model_copy(update={"tis_rewrite_enabled": True, "receiver_society": 88})

        result = TransactionAssembler(catalog, settings, now=fixed_now).assemble()
        swt = result.lines[4]
        assert swt[44:48] == "0124"
        assert record_types(result).count("SWT") == 1
        assert "TIS_REWRITE" in codes(result)
        assert minimal_work.shares[0].territories[0].tis_code == 2136


class TestVersion22:
    def test_header_and_group(self, settings_v22, catalog, published_work, fixed_now):
        result = TransactionAssembler(catalog, settings_v22, now=fixed_now).assemble()

        assert result.filename == "CW240001ACM_021.V22"
        assert len(result.lines[0]) == 167
        assert result.lines[0][101:104] == "2.2"
        assert result.lines[1][11:16] == "02.20"

    def test_publisher_sequence_and_cross_references(self, settings_v22, catalog, published_work, fixed_now):
        catalog.add_cross_reference(published_work, 10, "BMI1")

        result = TransactionAssembler(catalog, settings_v22, now=fixed_now).assemble()
        types = record_types(result)
        assert types[2:] == ["NWR", "SPU", "SPT", "SWR", "SWT", "PWR", "XRF", "GRT", "TRL"]

        pwr = result.lines[7]
        assert len(pwr) == 112
        assert pwr[110:112] == "01"
        assert result.lines[8][19:36] == "010BMI1          "

    def test_other_writer_territories_and_chain(self, settings_v22, catalog, submitter, writer, fixed_now):
        """In 2.2 uncontrolled writers carry OWT and their own PWR."""
        catalog.add_shareholder("W5", "OTHER", "OLIVER")
        work = catalog.register_work("WK060", "SHARED")
        publisher = catalog.add_share(work, "P1", "E", 50, 100, 100, link=1)
        catalog.add_territory(publisher, 2136, "I", 50, 100, 100)
        first = catalog.add_share(work, "W1", "CA", 25, 0, 0, link=1)
        catalog.add_territory(first, 2136, "I", 25, 0, 0)
        other = catalog.add_share(work, "W5", "CA", 25, 0, 0, link=1)
        catalog.add_territory(other, 2136, "I", 25, 0, 0)

        types = record_types(TransactionAssembler(catalog, settings_v22, now=fixed_now).assemble())
        assert types[2:11] == ["NWR", "SPU", "SPT", "SWR", "SWT", "PWR", "OWR", "OWT", "PWR"]
