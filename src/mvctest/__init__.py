"""Functional testing for web applications, one request at a time.

A test dispatches a simulated request to the application under test
and then makes assertions about the response: its status, headers,
redirect target and the contents of the body, selected with CSS
selectors or XPath expressions. What follows here is a quick tour of
the code.

Overview
========

Tests derive from `mvctest.testcase.HttpControllerTestCase`, which is
a regular `unittest.TestCase`, and implement `create_application` to
return an `mvctest.application.Application`. Any WSGI callable can be
wrapped in a `mvctest.application.WSGIApplication`.

`ControllerTestCase.dispatch` turns a URL, method and parameters into
an `mvctest.request.Request`, hands it to the application and keeps
the resulting `mvctest.response.Response` for the assertions.

Assertions
==========

Body assertions parse the response with lxml and run the query through
`mvctest.query.execute_query`. The matched nodes are then checked by
`mvctest.assertions.check_query`; header and redirect assertions have
their own checkers in the same module. Each check produces an
`mvctest.assertions.AssertionOutcome`, which is recorded in the test's
`mvctest.report.AssertionReport` and turned into an
`mvctest.assertions.ExpectationFailed` exception if it did not hold.

Configuration
=============

`mvctest.config.Settings` determines whether exceptions from the
application propagate out of `dispatch` and what server the requests
appear to be sent to. When running under pytest, `mvctest.pytest_plugin`
reads these settings from ini options and the command line.
"""
