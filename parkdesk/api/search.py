import logging

from fastapi import APIRouter, Depends

from parkdesk.dependencies.deps import console_response, get_console
from parkdesk.schema.form_schema import KeyPress, ResultSelection, SearchInput
from parkdesk.service.console import Console
from parkdesk.utils.errors import ConsoleStateError

logger = logging.getLogger(__name__)

search_router = APIRouter()


@search_router.get("/v1/search")
async def get_search(settle: bool = False, console: Console = Depends(get_console)):
    """
    Current state of the search popover. With `settle` the call waits for the
    debounce window and any outstanding request first.
    """
    if settle:
        await console.locator.flush()
    return console_response(console, True, "Search state", console.locator.snapshot())


@search_router.put("/v1/search/query")
async def set_query(search_input: SearchInput, console: Console = Depends(get_console)):
    console.locator.set_query(search_input.query)
    return console_response(console, True, "Query updated", console.locator.snapshot())


@search_router.post("/v1/search/focus")
async def focus(console: Console = Depends(get_console)):
    console.locator.focus()
    return console_response(console, True, "Search focused", console.locator.snapshot())


@search_router.post("/v1/search/key")
async def press_key(key_press: KeyPress, console: Console = Depends(get_console)):
    result = console.locator.handle_key(key_press.key)
    if result is None:
        return console_response(console, True, "Key handled", console.locator.snapshot())

    ok = await console.checkout.select_search_result(result)
    return console_response(console, ok, "Session selected", console.snapshot())


@search_router.post("/v1/search/select")
async def select_result(selection: ResultSelection, console: Console = Depends(get_console)):
    results = console.locator.results
    if not 0 <= selection.index < len(results):
        raise ConsoleStateError("No search result at that position")

    result = console.locator.select(results[selection.index])
    ok = await console.checkout.select_search_result(result)
    return console_response(console, ok, "Session selected", console.snapshot())


@search_router.post("/v1/search/close")
async def close_list(console: Console = Depends(get_console)):
    console.locator.close_list()
    return console_response(console, True, "Search closed", console.locator.snapshot())
