from pages_dev.matcher import match_pattern, match_redirect, matching_header_rules, substitute_placeholders
from pages_dev.rules import parse_headers, parse_redirects


def test_first_matching_redirect_wins():
    rules = parse_redirects("""
/blog/* /news/:splat 301
/blog/hello /greeting 302
/blog/hello /never 302
""")
    rule, captures = match_redirect(rules, "/blog/hello")

    assert rule.line_number == 2
    assert captures == {"splat": "hello"}


def test_static_redirect_only_matches_exactly():
    rules = parse_redirects("/old /new 301")

    assert match_redirect(rules, "/old/page") is None
    assert match_redirect(rules, "/older") is None
    assert match_redirect(rules, "/old")[0].destination == "/new"


def test_splat_and_placeholder_substitution():
    rules = parse_redirects("""
/users/:id/posts/* /u/:id?post=:splat 301
/docs/* https://docs.example.com/:splat 308
""")
    rule, captures = match_redirect(rules, "/users/42/posts/2024/intro")
    assert substitute_placeholders(rule.destination, captures) == "/u/42?post=2024/intro"

    rule, captures = match_redirect(rules, "/docs/guide/start")
    assert substitute_placeholders(rule.destination, captures) == "https://docs.example.com/guide/start"


def test_placeholder_matches_one_segment():
    assert match_pattern("/users/:id", "/users/42") == {"id": "42"}
    assert match_pattern("/users/:id", "/users/42/edit") is None


def test_pattern_literals_are_escaped():
    assert match_pattern("/file.txt", "/file.txt") == {}
    assert match_pattern("/file.txt", "/fileXtxt") is None


def test_unknown_placeholders_are_left_alone():
    assert substitute_placeholders("/a/:missing", {"splat": "x"}) == "/a/:missing"


def test_matching_header_rules_in_file_order():
    rules = parse_headers("""
/*
  X-Everywhere: 1
/assets/*
  Cache-Control: max-age=60
/other
  X-Other: 1
https://testserver/assets/*
  X-Host: yes
""")
    matched = matching_header_rules(rules, "http://testserver/assets/app.js")

    assert [rule.path for rule, _ in matched] == ["/*", "/assets/*", "https://testserver/assets/*"]
    assert matched[1][1] == {"splat": "app.js"}


def test_host_rules_do_not_match_other_hosts():
    rules = parse_headers("https://example.com/*\n  X-Host: yes\n")
    assert matching_header_rules(rules, "http://testserver/index.html") == []
