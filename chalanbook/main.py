import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, UploadFile, File, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from chalanbook import assembly, chalans as chalan_service, exports, identity
from chalanbook.cascade import ClientCascadeDelete
from chalanbook.config import CORS_ORIGINS, LOG_LEVEL
from chalanbook.db import create_db_and_tables, get_session
from chalanbook.errors import ChalanBookError, ServerError
from chalanbook.models import Chalan, Client, InventoryItem
from chalanbook.policy import Action, authorize
from chalanbook.schemas import (
    ChalanCreate, ChalanLineUpdate, ChalanOut, ChalanUpdate, Claims, ClientCreate, ClientDeleteOut,
    ClientOut, ClientUpdate, ImportResult, InventoryCreate, InventoryOut, InventoryUpdate, LoginIn,
    MessageOut, RegisterIn, SerialOut, SummaryOut, TokenOut, UserOut,
)
from chalanbook.store import EntityStore

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

create_db_and_tables()
app = FastAPI(title="Chalan Book")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ChalanBookError)
async def chalanbook_error_handler(request: Request, exc: ChalanBookError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # cause stays in the log, the client only sees a generic error
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=ServerError().to_dict())

bearer_scheme = HTTPBearer(auto_error=False)

def get_claims(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Claims:
    return identity.authenticate(credentials.credentials if credentials else None)

def require(action: Action):
    def dependency(claims: Claims = Depends(get_claims)) -> Claims:
        return authorize(claims, action)
    return dependency

can_read = require(Action.READ)
can_create = require(Action.CREATE)
can_update = require(Action.UPDATE)
can_delete = require(Action.DELETE)

@app.get("/health")
def health():
    return {"status": "ok"}

# Auth
@app.post('/auth/register', response_model=TokenOut)
def register(data: RegisterIn, session: Session = Depends(get_session)):
    return {'token': identity.register(session, data)}

@app.post('/auth/login', response_model=TokenOut)
def login(data: LoginIn, session: Session = Depends(get_session)):
    return {'token': identity.login(session, data.username, data.password)}

# Users
@app.get('/users/me', response_model=UserOut)
def read_profile(claims: Claims = Depends(get_claims), session: Session = Depends(get_session)):
    return identity.get_profile(session, claims.id)

@app.delete('/users/me', response_model=MessageOut)
def delete_profile(claims: Claims = Depends(get_claims), session: Session = Depends(get_session)):
    identity.delete_profile(session, claims.id)
    return {'message': 'Profile deleted'}

# Clients
@app.get('/clients', response_model=List[ClientOut])
def list_clients(session: Session = Depends(get_session), claims=Depends(can_read)):
    return EntityStore(session, Client).list()

@app.post('/clients', response_model=ClientOut, status_code=201)
def create_client(data: ClientCreate, session: Session = Depends(get_session), claims=Depends(can_create)):
    return EntityStore(session, Client).create(data.model_dump())

@app.put('/clients/{client_id}', response_model=ClientOut)
def update_client(client_id: int, data: ClientUpdate, session: Session = Depends(get_session), claims=Depends(can_update)):
    return EntityStore(session, Client).update(client_id, data.model_dump(exclude_unset=True))

@app.delete('/clients/{client_id}', response_model=ClientDeleteOut, response_model_exclude_unset=True)
def delete_client(client_id: int, cascade: bool = False, session: Session = Depends(get_session), claims=Depends(can_delete)):
    if cascade:
        report = ClientCascadeDelete(session, client_id).run()
        # dumped in full so every report field counts as set
        return {'message': 'Client deleted', 'report': report.model_dump()}
    EntityStore(session, Client).delete(client_id)
    return {'message': 'Client deleted'}

@app.get('/clients/{client_id}/next-serial', response_model=SerialOut)
def next_serial(client_id: int, session: Session = Depends(get_session), claims=Depends(can_read)):
    EntityStore(session, Client).get_or_404(client_id)
    return {'serial_number': assembly.next_serial_number(session, client_id)}

@app.get('/clients/{client_id}/suggestions', response_model=List[str])
def item_suggestions(client_id: int, q: str = '', session: Session = Depends(get_session), claims=Depends(can_read)):
    items = EntityStore(session, InventoryItem).list(client_id=client_id)
    return assembly.suggest_item_names([it.item_name for it in items], q)

# Inventory
@app.get('/inventory', response_model=List[InventoryOut])
def list_inventory(client_id: Optional[int] = Query(None, alias='clientId'), session: Session = Depends(get_session), claims=Depends(can_read)):
    return EntityStore(session, InventoryItem).list(client_id=client_id)

@app.post('/inventory', response_model=InventoryOut, status_code=201)
def create_inventory_item(data: InventoryCreate, session: Session = Depends(get_session), claims=Depends(can_create)):
    EntityStore(session, Client).get_or_404(data.client_id)
    return EntityStore(session, InventoryItem).create(data.model_dump())

@app.put('/inventory/{item_id}', response_model=InventoryOut)
def update_inventory_item(item_id: int, data: InventoryUpdate, session: Session = Depends(get_session), claims=Depends(can_update)):
    fields = data.model_dump(exclude_unset=True)
    if 'client_id' in fields:
        EntityStore(session, Client).get_or_404(fields['client_id'])
    return EntityStore(session, InventoryItem).update(item_id, fields)

@app.delete('/inventory/{item_id}', response_model=MessageOut)
def delete_inventory_item(item_id: int, session: Session = Depends(get_session), claims=Depends(can_delete)):
    EntityStore(session, InventoryItem).delete(item_id)
    return {'message': 'Inventory item deleted'}

# Chalans
@app.get('/chalans', response_model=List[ChalanOut])
def list_chalans(client_id: Optional[int] = Query(None, alias='clientId'), date: Optional[str] = None,
                 session: Session = Depends(get_session), claims=Depends(can_read)):
    rows = EntityStore(session, Chalan).list(client_id=client_id, date=date)
    return [chalan_service.chalan_to_dict(session, ch) for ch in rows]

@app.get('/chalans/{chalan_id}', response_model=ChalanOut)
def read_chalan(chalan_id: int, session: Session = Depends(get_session), claims=Depends(can_read)):
    chalan = EntityStore(session, Chalan).get_or_404(chalan_id)
    return chalan_service.chalan_to_dict(session, chalan)

@app.post('/chalans', response_model=ChalanOut, status_code=201)
def create_chalan(data: ChalanCreate, session: Session = Depends(get_session), claims: Claims = Depends(can_create)):
    chalan = chalan_service.create_chalan(session, data, claims)
    return chalan_service.chalan_to_dict(session, chalan)

@app.put('/chalans/{chalan_id}', response_model=ChalanOut)
def update_chalan(chalan_id: int, data: ChalanUpdate, session: Session = Depends(get_session), claims=Depends(can_update)):
    chalan = chalan_service.update_chalan(session, chalan_id, data)
    return chalan_service.chalan_to_dict(session, chalan)

@app.put('/chalans/{chalan_id}/items/{sno}', response_model=ChalanOut)
def update_chalan_line(chalan_id: int, sno: int, data: ChalanLineUpdate, session: Session = Depends(get_session), claims=Depends(can_update)):
    chalan = chalan_service.update_line(session, chalan_id, sno, data)
    return chalan_service.chalan_to_dict(session, chalan)

@app.delete('/chalans/{chalan_id}/items/{sno}', response_model=ChalanOut)
def remove_chalan_line(chalan_id: int, sno: int, session: Session = Depends(get_session), claims=Depends(can_update)):
    chalan = chalan_service.remove_line(session, chalan_id, sno)
    return chalan_service.chalan_to_dict(session, chalan)

@app.delete('/chalans/{chalan_id}', response_model=MessageOut)
def delete_chalan(chalan_id: int, session: Session = Depends(get_session), claims=Depends(can_delete)):
    chalan_service.delete_chalan(session, chalan_id)
    return {'message': 'Chalan deleted'}

# Import / Export
@app.post('/import/clients', response_model=ImportResult)
def import_clients(file: UploadFile = File(...), session: Session = Depends(get_session), claims=Depends(can_create)):
    return exports.import_clients(session, file.file)

@app.post('/import/inventory', response_model=ImportResult)
def import_inventory(file: UploadFile = File(...), session: Session = Depends(get_session), claims=Depends(can_create)):
    return exports.import_inventory(session, file.file)

@app.get('/export/chalans')
def export_chalans(client_id: Optional[int] = Query(None, alias='clientId'), session: Session = Depends(get_session), claims=Depends(can_read)):
    stream = exports.chalans_csv(session, client_id)
    return StreamingResponse(stream, media_type='text/csv', headers={'Content-Disposition': 'attachment; filename=chalans.csv'})

# Dashboard summary
@app.get('/dashboard/summary', response_model=SummaryOut)
def dashboard_summary(session: Session = Depends(get_session), claims=Depends(can_read)):
    return {
        'clients': EntityStore(session, Client).count(),
        'inventory': EntityStore(session, InventoryItem).count(),
        'chalans': EntityStore(session, Chalan).count(),
    }
