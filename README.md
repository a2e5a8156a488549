# omnims

This package provides two small HTTP services, built on Flask, that work together to manage stock and orders.

**IMS** is the inventory management service. It keeps these records in SQLite:

- tenants
- sellers
- hubs (warehouses)
- SKUs
- inventory levels
- webhook registrations

**OMS** is the order management service. It handles an order in five steps:

1. It accepts bulk orders as CSV files kept in an object store.
2. It checks every row against IMS and stores the valid rows as orders with status `on_hold`.
3. It publishes an order-created event for each stored order.
4. A finalizer handles each event. If IMS has enough stock, the finalizer reserves it and moves the order to `new_order`. Otherwise it leaves the order `on_hold`.
5. It notifies the tenant's registered webhooks.

## Installation

```
pip install omnims
```

To install the test tools as well:

```
pip install "omnims[test]"
```

## Running the services

```
omnims-ims --config configs/config.yaml
omnims-oms --config configs/config.yaml
```

`--config` names a YAML file. If you leave it out, the command reads the path from the `CONFIG_PATH` environment variable, and falls back to `configs/config.yaml`. Nested keys are written with dots below. Both servers listen on all interfaces.

### IMS settings

| Key | Meaning |
| --- | --- |
| `server.port` | Port to listen on |
| `log.level` | `debug`, `info`, `warn`, `error`, `fatal` or `panic`. The default is `info`. |
| `database.path` | SQLite file. The default is an in-memory database. |
| `redis.endpoint` | `host:port` of a Redis server used to cache hubs. When this is empty, an in-process cache is used instead. |
| `redis.db` | Redis database number |

### OMS settings

| Key | Meaning |
| --- | --- |
| `server.port` | Port to listen on |
| `log.level` | Same values as IMS |
| `ims.base_url` | Base URL of IMS |
| `ims.timeout` | Timeout for calls to IMS. Give it as seconds or as a duration such as `5s` or `1m30s`. |
| `s3.bucket` | Bucket that uploaded CSV files live in |
| `s3.root` | Directory that holds the object store. The default is `objects`. |
| `sqs.bulk_order_queue_url` | Required. Its last path element names the in-process job queue. |
| `sqs.consumer.batch_size` | Most jobs taken at once. The default is 10. |
| `kafka.version` | Required. It must not be empty. |
| `kafka.producer_topic` | Topic for order-created events. The default is `order.created`. |
| `mongodb.uri`, `mongodb.database` | MongoDB holding the `orders` and `webhooks` collections. Without a URI, orders are kept in memory. |
| `oms.upload_dir` | Folder read by `/orders/upload-local`. The default is `csv`. |

## IMS endpoints

| Method | Path | Purpose |
| --- | --- | --- |
| GET | `/health` | health check |
| POST, GET | `/tenants`, `/sellers`, `/hubs`, `/skus`, `/inventory`, `/webhooks` | create, list |
| GET, PUT, DELETE | `/<collection>/<id>` | read, update, delete |
| GET | `/hubs/code/<hub_code>` | find a hub by code |
| GET | `/skus/code/<sku_code>` | find a SKU by code |
| GET | `/inventory/query` | find a stock row |
| POST | `/inventory/consume` | take stock |

Notes on these endpoints:

- **Reading hubs.** A read of `/hubs/<id>` is cached for five minutes.
- **Errors.** Error bodies have the form `{"error": "<message>"}`.
- **Querying stock.** `/inventory/query` requires four query parameters: `tenant_id`, `seller_id`, `hub_code` and `sku_code`. If any is missing it answers 400. If no stock row matches it answers 404.

`/inventory/consume` takes a body like this:

```json
{"tenant_id": "t1", "seller_id": "s1", "hub_code": "H1", "sku_code": "SKU1", "quantity": 2}
```

It answers with one of these:

- `200 {"message": "Inventory consumed", "remaining": N}`
- `404` when no stock row matches
- `409` when there is not enough stock

The same operation can be called directly as `omnims.ims.inventory.consume_inventory(database, ...)`.

## OMS endpoints

| Method | Path | Purpose |
| --- | --- | --- |
| GET | `/health` | health check |
| POST | `/orders/csv` | queue an uploaded CSV for processing |
| POST | `/orders/upload-local` | upload local CSV files and queue them |
| POST | `/webhooks` | register a webhook |

### `POST /orders/csv`

The body is `{"path": "<object key>"}`. The service checks that the object exists in the bucket, then queues `{"Bucket": ..., "Key": ...}` for the CSV worker.

### `POST /orders/upload-local`

This stores every `*.csv` file in the upload folder under `uploads/<name>`, then queues each file. It answers 202 with this body:

```json
{"uploaded": [...], "failed": [...]}
```

A list is `null` when it would be empty. If the folder holds no CSV files, it answers 200 with `No CSV files found`.

### `POST /webhooks`

The body holds these fields:

- `tenant_id`
- `callback_url`
- `events`
- optional `headers`
- optional `secret`

A saved webhook is always marked active.

### CSV format

The header row names these columns:

```
tenant_id,seller_id,hub_id,sku_id,quantity
```

Blank lines are ignored. If any row's field count differs from the header's, the worker logs the whole file as unreadable and skips it.

A single row is rejected when any of these is true:

- its quantity is not a positive integer
- IMS does not know its SKU or its hub code
- the order cannot be saved

Rejected rows are written, under the original header, to `errors/<file name>-<unix time>.csv` in the same bucket.

### Webhook payloads

For each stored order, the active webhooks of the tenant that list `order.created` receive a JSON `POST`. For each order the finalizer moves to `new_order`, those listing `order.updated` receive one too. The body looks like this:

```json
{"data": {"ID": "...", "TenantID": "...", "SellerID": "...", "HubID": "...", "SKUID": "...", "Quantity": 1, "Status": "...", "CreatedAt": "..."}, "event": "order.created", "tenant_id": "t1"}
```

The request carries `Content-Type: application/json` plus any headers from the registration. Each webhook is sent in its own thread.

## Using the pieces directly

The applications are built by two factories:

- `omnims.ims.app.create_app(database, cache)`
- `omnims.oms.api.create_app(service, store, upload_dir)`

`omnims.oms.server.build_services(config)` wires the OMS parts together. `omnims.config.load_config(path)` reads a configuration file.

The building blocks are:

- **IMS records and cache:** `omnims.ims.database.Database`, `omnims.ims.cache.MemoryCache` and `omnims.ims.cache.RedisCache`.
- **OMS order storage:** `omnims.oms.storage.MemoryOrderStore` and `MongoOrderStore`.
- **OMS objects and messaging:** `omnims.oms.objects.ObjectStore`, `omnims.oms.messaging.MessageQueue` and `EventBus`.
- **OMS workers and clients:** `omnims.oms.csv_worker.CSVOrderHandler`, `omnims.oms.finalizer.OrderFinalizer` and `omnims.oms.ims_client.IMSClient`.

## What this package does not do

- **No PostgreSQL.** IMS stores its records in SQLite only, and runs no schema migrations beyond creating its tables.
- **No S3.** Objects are files under a local directory tree (`s3.root`). The `s3.*` names only choose that directory and the bucket name.
- **No SQS or Kafka.** The job queue and the event bus live inside the OMS process. The `sqs.*` and `kafka.*` keys only name them, and nothing is shared between processes. Events are handled at the moment they are published, so an order's finalizing runs inside the CSV worker's thread.
- **One language only.** Error messages are fixed English texts, with no translation.