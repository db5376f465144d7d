from etms.access.scope import Scope


def test_everyone_matches_any_owner():
    assert Scope.everyone().matches([42])


def test_nobody_matches_nothing():
    assert not Scope.nobody().matches([1, 2, 3])


def test_owner_in_set_matches():
    scope = Scope.of({4, 5})

    assert scope.matches([5])
    assert scope.matches([9, 4])
    assert not scope.matches([6])


def test_authored_branch_widens_to_own_authorship():
    scope = Scope.of({3}, authored_by=3)

    assert scope.matches([6], author_id=3)
    assert not scope.matches([6], author_id=1)


def test_narrowing_intersects_never_widens():
    team = Scope.of({3, 4, 5})

    assert team.narrow(4).matches([4])
    assert not team.narrow(4).matches([5])
    assert not team.narrow(6).matches([6])


def test_narrowing_unrestricted_scope():
    scope = Scope.everyone().narrow(6)

    assert scope.matches([6])
    assert not scope.matches([4])


def test_narrow_none_is_identity():
    scope = Scope.of({1})

    assert scope.narrow(None) is scope
