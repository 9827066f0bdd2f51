import pytest

ADD_AND_COUNT = """\
fn add(x, y) {
    let int result = x + y;
    print("Result: ", result);
}

add(1, 2);
add(3, 4);
add(5, 6);

let int x = 0;
while int(x < 100) {
    print("Current value of x: ", x);
    let int x = x + 1;
}
"""

NESTED_SHADOW = "{ let int x = 0; { let int x = x + 1; print(x); } print(x); }"


@pytest.fixture
def add_and_count():
    return ADD_AND_COUNT


@pytest.fixture
def nested_shadow():
    return NESTED_SHADOW


@pytest.fixture
def add_and_count_output():
    lines = ["Result: 3", "Result: 7", "Result: 11"]
    lines += [f"Current value of x: {i}" for i in range(100)]
    return "\n".join(lines) + "\n"
