# bybit_spot

A Python client for the Bybit spot API. It covers the v1 REST endpoints for market data, orders and wallet balances. It also covers the v1 websocket streams for public trades and private account updates. Local mock servers and golden-file helpers are included for testing code that uses it.

## Installation

```
pip install bybit_spot
```

The tests need the `test` extra:

```
pip install "bybit_spot[test]"
```

## REST endpoints

`bybit_spot.spot_v1.SpotTransport` is the HTTP client. It is a dataclass with these fields:

- `base_url`
- `key` (optional)
- `secret` (optional)
- `timeout`, which defaults to 30 seconds

It offers four request methods:

- `get_publicly` sends an unsigned request.
- `get_privately`, `post_form` and `delete_privately` sign the request. They add `api_key` and a millisecond `timestamp`, then a `sign` value: the HMAC-SHA256 of the sorted, URL-encoded parameters, keyed with the secret.

All four behave the same way once the request is sent:

- Calling a private method without a key and secret raises `ValueError`.
- Every reply body is passed through `check_response_body`.
- The decoded JSON object is returned.
- An HTTP 404 raises `PathNotFoundError` and an HTTP 403 raises `AccessDeniedError`.

`SpotV1Service(client)` sends the spot v1 calls through a transport. Each call returns a `SpotResponse`, which holds the common envelope in `.common` and the decoded result in `.result`.

```python
from bybit_spot.spot_v1 import (
    SpotOpenOrdersParam,
    SpotQuoteDepthParam,
    SpotTransport,
    SpotV1Service,
)

client = SpotTransport("https://api.example.com", key="placeholder", secret="secret")
service = SpotV1Service(client)

depth = service.spot_quote_depth(SpotQuoteDepthParam(symbol="BTCUSDT"))
for entry in depth.result.bids:
    print(entry.price, entry.quantity)

orders = service.spot_open_orders(SpotOpenOrdersParam(symbol="BTCUSDT"))
```

### Market data

| Method | Parameter | Result |
|---|---|---|
| `spot_symbols()` | none | `list[SpotSymbolsResult]` |
| `spot_quote_depth(param)` | `SpotQuoteDepthParam` | `SpotQuoteDepthResult` |
| `spot_quote_depth_merged(param)` | `SpotQuoteDepthMergedParam` | `SpotQuoteDepthResult` |
| `spot_quote_trades(param)` | `SpotQuoteTradesParam` | `list[SpotQuoteTradesResult]` |
| `spot_quote_kline(param)` | `SpotQuoteKlineParam` | `list[SpotQuoteKline]` |
| `spot_quote_ticker_24hr(param)` | `SpotQuoteTickerParam` | `SpotQuoteTicker24hrResult` |
| `spot_quote_ticker_price(param)` | `SpotQuoteTickerParam` | `SpotQuoteTickerPriceResult` |
| `spot_quote_ticker_book_ticker(param)` | `SpotQuoteTickerParam` | `SpotQuoteTickerBookTickerResult` |

### Orders and wallet (signed)

| Method | Parameter | Result |
|---|---|---|
| `spot_post_order(param)` | `SpotPostOrderParam` | `SpotPostOrderResult` |
| `spot_get_order(param)` | `SpotOrderIdParam` | `SpotOrderResult` |
| `spot_delete_order(param)` | `SpotOrderIdParam` | `SpotDeleteOrderResult` |
| `spot_delete_order_fast(param)` | `SpotDeleteOrderFastParam` | `bool` (cancelled) |
| `spot_order_batch_cancel(param)` | `SpotOrderBatchCancelParam` | `bool` (success) |
| `spot_order_batch_fast_cancel(param)` | `SpotOrderBatchCancelParam` | `bool` (success) |
| `spot_order_batch_cancel_by_ids(order_ids)` | sequence of ids | `list[SpotOrderBatchCancelByIDsResult]` |
| `spot_open_orders(param)` | `SpotOpenOrdersParam` | `list[SpotOrderResult]` |
| `spot_get_wallet_balance()` | none | `list[SpotWalletBalance]` |

Each parameter dataclass has a `to_query()` method. Optional fields left as `None` are not sent. Float quantities and prices drop a trailing `.0`. In `SpotOrderBatchCancelParam`, the order types are joined with commas into `orderTypes`.

`spot_order_batch_cancel_by_ids` raises `ValueError` when it is given more than 100 ids.

The array formats are decoded as follows:

- Depth entries (`[[price, quantity], ...]`) are decoded by `parse_depth_entries`. It raises `ValueError` for entries that do not have exactly two elements.
- Candles are decoded by `SpotQuoteKline.from_list`, which requires exactly eleven elements.

## Errors

`bybit_spot.response.check_response_body(body)` decodes a v1/v2 body and returns its `CommonResponse`. It raises in two cases:

- `RateLimitError` for return code 10006. Its message tells how long until the limit resets.
- `ErrorResponse` for any other non-zero `ret_code`. Its message has the form `"<code>, <message>"`.

`check_v3_response_body` does the same check on the `retCode` of a v3 envelope and returns a `CommonV3Response`.

## Websocket streams

`bybit_spot.ws_spot.SpotWebsocketV1Service(base_url, auth_param=None)` opens the stream connections:

- `public_v1()` connects to `/spot/quote/ws/v1`.
- `public_v2()` connects to `/spot/quote/ws/v2`.
- `private()` connects to `/spot/ws`. It raises `ValueError` when no `auth_param` was given.

```python
from bybit_spot.ws_spot import SpotWebsocketV1Service

ws = SpotWebsocketV1Service("wss://stream.example.com")
public = ws.public_v1()

def on_trade(response):
    print(response.symbol, [trade.price for trade in response.data])

unsubscribe = public.subscribe_trade("BTCUSDT", on_trade)
public.run()       # read and dispatch one message
unsubscribe()
public.close()
```

### Public trade streams

In both public services, `subscribe_trade(symbol, func)` sends a subscribe request and returns a function. Calling that function sends the cancel request and drops the callback. Subscribing the same symbol twice raises `ValueError`.

The two streams deliver trades differently:

- The v1 stream hands the callback a `PublicV1TradeResponse`, which carries a list of `PublicV1TradeContent`.
- The v2 stream hands the callback a `PublicV2TradeResponse`, which carries a single `PublicV2TradeContent`. Subscription acknowledgements are ignored.

### Private stream

The private service has two setup calls:

- `subscribe()` sends the authentication message.
- `register_func_outbound_account_info(func)` registers the callback for `OutboundAccountInfo` events.

If a message reports a failed authentication, `run()` raises `PermissionError`.

### Running the services

All three services share these methods:

- `run()` reads one message and passes it to the matching callback. It raises `LookupError` when no callback is registered for the message.
- `ping()` sends a ping frame.
- `close()` sends a normal-closure frame.
- `start(stop_event=None)` reads messages on a background thread and sends a ping every 20 seconds. It returns when the stream ends, or when the `threading.Event` is set or Ctrl-C is pressed; in those two cases it closes the connection first.

`bybit_spot.ws_connection` provides the plumbing behind the services:

- `WebsocketConnection` is the blocking connection the services use.
- `run_loop` is the loop behind `start`.
- `is_err_websocket_closed(err)` tells whether an error means a normal closure.

## Testing helpers

`bybit_spot.mock_server` starts servers on a free local port. Both servers expose `.url` and can be used as context managers.

`MockServer(*options)` is an HTTP server. Routes are added with `handler_option(path, method, status, resp_body)`:

- The given method gets the given status and body.
- Any other method gets an empty 200 reply.
- Unknown paths get a 404 reply.

`MockWebsocketServer(*options)` is a websocket server. Routes are added with `websocket_handler_option(path, resp_body)`:

- Every message received on that path is answered with `resp_body`.
- Unknown paths are refused with a 404 reply.

`make_ws_protocol(url)` turns an `http(s)` URL into a `ws(s)` URL.

`bybit_spot.golden` compares results with golden JSON files:

- `convert_to_json(src)` serialises a value as JSON indented by two spaces. It accepts dataclasses and objects with `to_dict()`.
- `json_equal(want, got)` compares two JSON documents by value.
- `compare_golden(golden_filename, got)` checks against a golden file:
  - it returns `False` when the file is missing;
  - it returns `True` when the file matches;
  - it raises `AssertionError` when the file differs.
- `save_to_file(name, data)` writes the file with mode 0644.
- `update_file(filename, data)` rewrites the file only when `BYBIT_TEST_UPDATED` is `true`.

## What the package does not do

- It does not build the signed authentication message for the private websocket stream. Pass it in as `auth_param`, either as a string or bytes, or as a callable that returns one.
- It covers only the spot v1 endpoints. There are no derivatives, futures, USDC or spot v3 calls.
- There is no command-line tool.