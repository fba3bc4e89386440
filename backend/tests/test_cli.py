# Overview: Pytest coverage for the Flask CLI command groups.

from kickledger.models import Avatar, ConsignmentSale, Organization, User


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--org", "Sole Swap", "--org-code", "SOLE"])
    assert first.exit_code == 0, first.output
    second = runner.invoke(args=["system", "init"])
    assert second.exit_code == 0, second.output

    assert db_session.query(Organization).count() == 1
    assert db_session.query(User).filter_by(username="admin").count() == 1
    assert db_session.query(Avatar).filter_by(avatar_type="Main").count() == 1


def test_avatar_create_with_percent(app, db_session, org_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "avatars", "create", "--org-id", str(org_a.id), "--name", "Partner", "--default-percent", "12.5",
    ])
    assert result.exit_code == 0, result.output
    avatar = db_session.query(Avatar).filter_by(org_id=org_a.id, name="Partner").one()
    assert avatar.default_percentage_bps == 1250


def test_payout_process(app, db_session, org_a, user_a, consignor_a, make_pending_sales):
    rows = make_pending_sales(consignor_a, [4000, 3000])
    runner = app.test_cli_runner()

    pending = runner.invoke(args=["payouts", "pending", "--org-id", str(org_a.id)])
    assert "70.00" in pending.output

    result = runner.invoke(args=[
        "payouts", "process",
        "--org-id", str(org_a.id),
        "--user-id", str(user_a.id),
        "--consignor-id", str(consignor_a.id),
        "--amount", "40.00",
        "--method", "Cash",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS PO-" in result.output
    assert db_session.get(ConsignmentSale, rows[0].id).payout_status == "paid"


def test_payout_process_reports_failure(app, db_session, org_a, user_a, consignor_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "payouts", "process",
        "--org-id", str(org_a.id),
        "--user-id", str(user_a.id),
        "--consignor-id", str(consignor_a.id),
        "--amount", "40.00",
    ])
    assert "FAIL No pending payouts" in result.output
